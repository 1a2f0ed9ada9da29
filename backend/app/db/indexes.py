# backend/app/db/indexes.py
"""
Creación de índices (sincrónico, se llama desde connect_to_mongo).
"""
from pymongo import ASCENDING

SUBSCRIPTIONS = "push_subscriptions"

def ensure_indexes(db) -> None:
    col = db[SUBSCRIPTIONS]

    # una sola fila por (suscriptor, endpoint); el alta borra y recrea
    col.create_index(
        [("subscriber_id", ASCENDING), ("endpoint", ASCENDING)],
        unique=True,
        name="subscriber_endpoint_unique",
    )
    # listActive(subscriber) y countActive
    col.create_index([("subscriber_id", ASCENDING), ("is_active", ASCENDING)])
    # listActive(ALL)
    col.create_index([("is_active", ASCENDING)])
