# app/db/mongo.py
import os
from pymongo import MongoClient

from .indexes import ensure_indexes

_client = None
_db = None

def connect_to_mongo():
    """
    Conecta a Mongo y crea índices. Lee MONGO_URI y MONGO_DB de env.
    Se llama en startup (lifespan) y es SINCRÓNICO.
    """
    global _client, _db
    if _client:
        return _db

    uri = os.environ.get("MONGO_URI", "mongodb://localhost:27017")
    dbname = os.environ.get("MONGO_DB", "status_push")

    _client = MongoClient(uri, uuidRepresentation="standard")
    _db = _client[dbname]

    ensure_indexes(_db)
    return _db


def disconnect_from_mongo():
    """
    Cierra la conexión. Si la DB se llama status_push_test_*, la borra.
    """
    global _client, _db
    if _client:
        dbname = os.environ.get("MONGO_DB", "")
        if dbname.startswith("status_push_test_"):
            _client.drop_database(dbname)
        _client.close()
    _client = None
    _db = None


def get_db():
    if _db is None:
        raise RuntimeError("MongoDB no inicializado. Llama connect_to_mongo() en startup.")
    return _db
