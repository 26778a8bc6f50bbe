"""
Network management for swapbench.
Web3 Connection Management for the offline signer and the live dispatcher.
"""
import logging
import time
import typing as t

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from web3 import AsyncWeb3, Web3
from web3.providers import AsyncHTTPProvider, HTTPProvider

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Hands out Web3 instances for one endpoint, sharing a pooled HTTP Session.
    """
    def __init__(self, url: str, request_timeout: int = 120) -> None:
        self.url = url
        self.request_timeout = request_timeout
        self._web3: t.Optional[Web3] = None
        self._async_web3: t.Optional[AsyncWeb3] = None
        self._session = self._create_session()

    def _create_session(self) -> requests.Session:
        """
        Creates an HTTP session with a large connection pool and retries.
        Bundle generation issues one nonce/chain-id read per identity, but live
        windows can hold hundreds of outstanding requests.
        """
        session = requests.Session()
        adapter = HTTPAdapter(
            pool_connections=500,
            pool_maxsize=500,
            max_retries=Retry(
                total=10,
                backoff_factor=1.0,
                status_forcelist=[500, 502, 503, 504]
            )
        )
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def get_web3(self) -> Web3:
        """
        Returns a synchronous Web3 instance with the shared session.
        """
        if self._web3 is None:
            provider = HTTPProvider(
                self.url,
                session=self._session,
                request_kwargs={"timeout": self.request_timeout},
            )
            self._web3 = Web3(provider)
        return self._web3

    def get_async_web3(self) -> AsyncWeb3:
        """
        Returns an AsyncWeb3 instance for cooperative live dispatch.
        """
        if self._async_web3 is None:
            provider = AsyncHTTPProvider(
                self.url,
                request_kwargs={"timeout": self.request_timeout},
            )
            self._async_web3 = AsyncWeb3(provider)
        return self._async_web3

    def wait_until_ready(self, attempts: int = 30, interval: float = 1.0) -> None:
        """
        Poll ``is_connected()`` until the node answers.
        """
        web3 = self.get_web3()
        for _ in range(attempts):
            try:
                if web3.is_connected():
                    logger.info("Connected to %s", self.url)
                    return
            except requests.RequestException:
                pass
            time.sleep(interval)
        raise ConnectionError(f"Node at {self.url} not reachable after {attempts} attempts")

    def close(self) -> None:
        self._session.close()
