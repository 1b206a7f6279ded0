# Overview: Flask extension instances backing the document store table and its migrations.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# Shared by DocumentStore (via create_app) and the CLI bootstrap commands
db = SQLAlchemy()
migrate = Migrate()
