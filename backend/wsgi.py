# backend/wsgi.py
from solespace import create_app

app = create_app()
