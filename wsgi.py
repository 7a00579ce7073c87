"""
Flask-Migrate / Alembic entry point.

Usage:
    flask db upgrade
    flask new-intake --vertical home_services
    gunicorn wsgi:app
"""

from intake import create_app

app = create_app()
