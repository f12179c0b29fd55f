from typing import Optional

from fastapi import Request

from kfet.core.channel import SqliteChannel
from kfet.core.config import settings
from kfet.core.executor import ChannelAdapter
from kfet.core.ledger import Ledger


def build_channel(
    database_url: Optional[str] = None, echo: Optional[bool] = None
) -> SqliteChannel:
    return SqliteChannel(
        database_url or settings.DATABASE_URL,
        echo=settings.SQL_ECHO if echo is None else echo,
    )


def build_ledger(channel: SqliteChannel) -> Ledger:
    return Ledger(ChannelAdapter(channel))


# This is the "Bridge" that gives routes access to the ledger opened at startup
def get_ledger(request: Request) -> Ledger:
    return request.app.state.ledger
