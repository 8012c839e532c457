"""URL shortening through the is.gd JSON API."""

import logging

import httpx

logger = logging.getLogger(__name__)

API_URL = "https://is.gd/create.php"
USER_AGENT = "DevocionalBot/1.0"


class UrlShortener:
    """Shortens URLs, falling back to the original on any failure.

    Results are cached per instance. A disabled shortener returns its input
    unchanged and never touches the network.
    """

    def __init__(
        self,
        enabled: bool = True,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ):
        self._enabled = enabled
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._cache: dict[str, str] = {}

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def clear_cache(self) -> None:
        self._cache.clear()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout, headers={"User-Agent": USER_AGENT}
            )
        return self._client

    async def shorten(self, url: str) -> str:
        if not self._enabled:
            return url
        if not url or not url.strip():
            logger.warning("shorten_invalid_url")
            return url
        if url in self._cache:
            return self._cache[url]

        try:
            response = await self._get_client().get(
                API_URL, params={"format": "json", "url": url}
            )
            response.raise_for_status()
            data = response.json()
            if not isinstance(data, dict):
                raise ValueError("Invalid response from URL shortener API")
            if data.get("errorcode"):
                raise ValueError(
                    data.get("errormessage") or f"API error code: {data['errorcode']}"
                )
            short = data.get("shorturl")
            if not isinstance(short, str) or not short:
                raise ValueError("Invalid response from URL shortener API")
        except httpx.TimeoutException:
            logger.warning(
                "shorten_timeout", extra={"url": url, "timeout_s": self._timeout}
            )
            return url
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("shorten_failed", extra={"url": url, "error.message": str(e)})
            return url

        self._cache[url] = short
        logger.debug("url_shortened", extra={"url": url, "url.short": short})
        return short

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
