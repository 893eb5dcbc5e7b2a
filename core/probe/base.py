"""
HTTP 会话持有者

探测器和远程分析器共用: 同步 requests.Session 与异步 aiohttp.ClientSession
都在首次使用时创建，也可以由调用方注入。注入的会话不会被关闭。
"""

import logging
from typing import Optional

import aiohttp
import requests

from core.http import HTTPClientFactory, HTTPConfig

logger = logging.getLogger(__name__)


class SessionHolder:
    """管理同步/异步 HTTP 会话的生命周期"""

    def __init__(
        self,
        http_config: HTTPConfig,
        session: Optional[aiohttp.ClientSession] = None,
        sync_session: Optional[requests.Session] = None,
    ):
        self.http_config = http_config
        self._session = session
        self._owns_session = session is None
        self._sync_session = sync_session
        self._owns_sync_session = sync_session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = HTTPClientFactory.create_async_session(self.http_config)
            self._owns_session = True
        return self._session

    def _get_sync_session(self) -> requests.Session:
        if self._sync_session is None:
            self._sync_session = HTTPClientFactory.create_sync_session(self.http_config)
            self._owns_sync_session = True
        return self._sync_session

    async def close(self) -> None:
        """关闭自己创建的会话"""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self.close_sync()

    def close_sync(self) -> None:
        """关闭自己创建的同步会话"""
        if self._owns_sync_session and self._sync_session is not None:
            self._sync_session.close()
            self._sync_session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close_sync()
