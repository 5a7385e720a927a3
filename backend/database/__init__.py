from .connection import get_db, get_engine, get_sessionmaker, init_db, Base

from .member_models import UserDB, AuthSessionDB, MemberProfileDB

__all__ = [
    'get_db', 'get_engine', 'get_sessionmaker', 'init_db', 'Base',
    'UserDB', 'AuthSessionDB', 'MemberProfileDB',
]
