# cardledger/db/engine.py

from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from cardledger.config import config


@lru_cache(maxsize=None)
def get_engine(url: str = None) -> Engine:
    # echo=True if you want to see SQL printed in the terminal
    return create_engine(url or config.DATABASE_URL, future=True)
