"""
LeadNest Application

Module-level app instance for `flask run` and gunicorn (application:app).
Everything else lives in app_init.create_app().

Database tables are created via Alembic migrations:
    alembic upgrade head
"""
import os

from app_init import create_app

app = create_app()


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    app.run(host='0.0.0.0', port=port, debug=app.debug)
