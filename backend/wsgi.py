# backend/wsgi.py
from comercial import create_app

app = create_app()
