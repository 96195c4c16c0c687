"""
Persistence layer: SQLAlchemy models and the shared DBStorage instance.

The engine is created lazily by ``storage.reload()`` (called from the Flask
application factory) so importing the models never touches a database.
"""
from models.db_storage import DBStorage

storage = DBStorage()
