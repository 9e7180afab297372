# backend/wsgi.py
# FLASK_APP=wsgi.py
from storepos import create_app

app = create_app()
