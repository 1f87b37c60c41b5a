# backend/wsgi.py
from netpro import create_app

app = create_app()
