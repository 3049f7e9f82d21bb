# main.py
# uvicorn main:app --reload
from prodtrack.main import app

__all__ = ["app"]
