# =======================================================================================
# adms_gateway/api/dependencies.py - FastAPI Dependencies
# =======================================================================================
from fastapi import Depends, Request
from sqlalchemy.engine import Connection
from ..database import DatabaseManager

def get_db_manager(request: Request) -> DatabaseManager:
    """The store handle the application was built with."""
    return request.app.state.db_manager

def get_db_connection(db: DatabaseManager = Depends(get_db_manager)) -> Connection:
    """Dependency to get a transactional database connection."""
    with db.get_connection() as conn:
        yield conn

def client_ip(request: Request):
    return request.client.host if request.client else None
