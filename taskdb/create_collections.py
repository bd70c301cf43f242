import logging

from pymongo.database import Database
from pymongo.errors import CollectionInvalid

from taskdb.connect_db import get_database
from taskdb.schema import TASKS_COLLECTION, task_schema

logger = logging.getLogger(__name__)

COLLECTIONS = {
    TASKS_COLLECTION: task_schema,
}


def create_collections(db: Database) -> None:
    """Create each collection if missing and (re)apply its $jsonSchema validator."""
    for name, schema in COLLECTIONS.items():
        try:
            db.create_collection(name)
        except CollectionInvalid:
            # already exists
            pass

        db.command("collMod", name, validator={"$jsonSchema": schema})
        logger.info("Created/updated collection '%s' with validation.", name)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    database = get_database()
    try:
        create_collections(database)
    finally:
        database.client.close()
