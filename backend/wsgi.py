# backend/wsgi.py
from gestor import create_app

app = create_app()
