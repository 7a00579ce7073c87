"""
Site Intake
SQLAlchemy extension handle shared by every model module.

Usage:
    from intake.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
