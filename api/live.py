"""
Socket.IO live channel.

Clients authenticate during the handshake with their access token, either
as the Socket.IO auth payload ({"token": "..."}) or as the `access_token`
query parameter, since browsers cannot set headers on a websocket upgrade.
Each connection joins its user's room so user-scoped notifications reach
only that user.
"""

import logging

from flask import request
from flask_socketio import emit, join_room

from services.errors import Unauthorized
from services.live import user_room

logger = logging.getLogger(__name__)


def _handshake_token(auth):
    if isinstance(auth, dict) and auth.get("token"):
        return auth["token"]
    return request.args.get("access_token")


def register_live_handlers(socketio_instance, session_manager):
    """Register SocketIO event handlers.

    Args:
        socketio_instance: Flask-SocketIO instance
        session_manager: validates the handshake access token
    """
    @socketio_instance.on('connect')
    def handle_connect(auth=None):
        token = _handshake_token(auth)
        if not token:
            logger.warning("Live connect rejected: no access token")
            return False

        try:
            claims = session_manager.validate_access_token(token)
        except Unauthorized as e:
            logger.warning(f"Live connect rejected: {e}")
            return False

        join_room(user_room(claims["user_id"]))
        logger.info(f"Live client connected: {claims['username']}")
        emit('connected', {'status': 'connected', 'username': claims['username']})

    @socketio_instance.on('disconnect')
    def handle_disconnect(*args):
        logger.debug("Live client disconnected")
