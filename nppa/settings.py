# Scrapy settings for the nppa project
#
# Deployment knobs come from the environment; per-run options are spider
# arguments (-a full=1 -a channels=jkwlyxspxx,yxspbgxx).
#
#     https://docs.scrapy.org/en/latest/topics/settings.html
import os

BOT_NAME = "nppa"

SPIDER_MODULES = ["nppa.spiders"]
NEWSPIDER_MODULE = "nppa.spiders"

ROBOTSTXT_OBEY = False

# one request in flight; the chain in ApprovalSpider depends on it
CONCURRENT_REQUESTS = 1
CONCURRENT_REQUESTS_PER_DOMAIN = 1
DOWNLOAD_TIMEOUT = int(os.getenv("NPPA_DOWNLOAD_TIMEOUT", "30"))
HTTPCACHE_ENABLED = False

DOWNLOADER_MIDDLEWARES = {
    "scrapy.downloadermiddlewares.retry.RetryMiddleware": None,
    "nppa.middlewares.UserRotationMiddleware": 400,
    "nppa.middlewares.BadGatewayRetryMiddleware": 550,
}

FETCH_MAX_RETRIES = int(os.getenv("NPPA_FETCH_RETRIES", "10"))
FETCH_RETRY_DELAY = float(os.getenv("NPPA_FETCH_RETRY_DELAY", "0.5"))

ITEM_PIPELINES = {
    "nppa.pipelines.StorePipeline": 300,
    "nppa.pipelines.NotificationPipeline": 800,
}

# section: /bsfw/jggs/yxspjg/index_N.html, channels: /nppa/channels/<id>_N.shtml
NPPA_URL_SCHEME = os.getenv("NPPA_URL_SCHEME", "section")
NPPA_PAGES_FULL = int(os.getenv("NPPA_PAGES_FULL", "30"))
NPPA_PAGES_INCREMENTAL = int(os.getenv("NPPA_PAGES_INCREMENTAL", "1"))

NPPA_STORE = os.getenv("NPPA_STORE", "nppa.store.JsonFileStore")
NPPA_DATA_DIR = os.getenv("NPPA_DATA_DIR", "data")
NPPA_SQL_URL = os.getenv("NPPA_SQL_URL", "sqlite:///nppa.db")
NPPA_FROZEN_CHANNELS = os.getenv("NPPA_FROZEN_CHANNELS", "gcwlyxspxx").split(",")

# ISBN_SMTP_ADDR is host:port
_smtp_addr = os.getenv("ISBN_SMTP_ADDR", "")
_smtp_host, _, _smtp_port = _smtp_addr.rpartition(":")
MAIL_HOST = _smtp_host or _smtp_addr
MAIL_PORT = int(_smtp_port) if _smtp_host and _smtp_port else 25
# implicit TLS on 465, STARTTLS otherwise
MAIL_SSL = os.getenv("ISBN_SMTP_SSL", "1" if MAIL_PORT == 465 else "0") == "1"
MAIL_TLS = not MAIL_SSL and os.getenv("ISBN_SMTP_TLS", "1") == "1"
MAIL_USER = os.getenv("ISBN_SMTP_USER") or None
MAIL_PASS = os.getenv("ISBN_SMTP_PASS") or None
MAIL_FROM = MAIL_USER or "scrapy@localhost"
NPPA_NOTIFY_TO = [x.strip() for x in os.getenv("ISBN_SMTP_TO", "").split(",") if x.strip()]

LOG_LEVEL = os.getenv("NPPA_LOGLEVEL", "INFO")
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

FEED_EXPORT_ENCODING = "utf-8"
TWISTED_REACTOR = "twisted.internet.asyncioreactor.AsyncioSelectorReactor"
