import os

from app import app
from config import instance_dir
from extensions import db
import models  # noqa: F401  db models to create (all)

with app.app_context():
    os.makedirs(instance_dir, exist_ok=True)
    print("DB URI:", app.config["SQLALCHEMY_DATABASE_URI"])
    db.create_all()
    print("DB CREATED")
