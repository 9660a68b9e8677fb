# Define here the models for your downloader middleware
#
# See documentation in:
# https://docs.scrapy.org/en/latest/topics/downloader-middleware.html
import logging
import random

from scrapy.utils.defer import maybe_deferred_to_future

from nppa.errors import GatewayExhaustedError

logger = logging.getLogger(__name__)


class UserRotationMiddleware:
    UAS = [
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    ]

    def process_request(self, request, spider):
        request.headers["User-Agent"] = random.choice(self.UAS)
        return None


class BadGatewayRetryMiddleware:
    """Retries 502 responses after a fixed pause.

    Only 502 is retried. Other statuses pass through to HttpErrorMiddleware and
    network errors are not touched, so both reach the request errback at once.
    ``request.meta["max_retries"]`` overrides FETCH_MAX_RETRIES per request.
    """

    def __init__(self, max_retries: int = 10, delay: float = 0.5):
        self.max_retries = max_retries
        self.delay = delay

    @classmethod
    def from_crawler(cls, crawler):
        s = crawler.settings
        return cls(s.getint("FETCH_MAX_RETRIES", 10), s.getfloat("FETCH_RETRY_DELAY", 0.5))

    async def process_response(self, request, response, spider):
        if response.status != 502:
            return response

        attempt = request.meta.get("fetch_attempt", 1)
        max_retries = request.meta.get("max_retries", self.max_retries)
        if attempt >= max_retries:
            logger.warning("Giving up on %s after %d bad gateway responses", request.url, attempt)
            raise GatewayExhaustedError(request.url, attempt)

        logger.debug("Bad gateway for %s (attempt %d/%d)", request.url, attempt, max_retries)
        await self.pause()
        retry = request.replace(dont_filter=True)
        retry.meta["fetch_attempt"] = attempt + 1
        return retry

    async def pause(self):
        from twisted.internet import reactor
        from twisted.internet.task import deferLater

        await maybe_deferred_to_future(deferLater(reactor, self.delay, lambda: None))
