"""
Application services: sessions, credentials, the metric work queue and its
background worker, and the notification fan-out.

Services receive their collaborators explicitly and never read
``flask.current_app``, so the background worker can use them off-request.
"""
