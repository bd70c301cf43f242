# schema.py

TASKS_COLLECTION = "tasks"

task_schema = {
    "bsonType": "object",
    "required": ["title"],
    "properties": {
        "title": {"bsonType": "string", "minLength": 1},
        "description": {"bsonType": ["string", "null"]},
        "completed": {"bsonType": "bool"}
    }
}
