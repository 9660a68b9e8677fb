# Define your item pipelines here
#
# Don't forget to add your pipeline to the ITEM_PIPELINES setting
# See: https://docs.scrapy.org/en/latest/topics/item-pipeline.html
import logging
from email.header import Header

from scrapy import signals
from scrapy.mail import MailSender

from nppa.utility import notification_body

logger = logging.getLogger(__name__)

SUBJECT = "「ISBN」审批信息"


class StorePipeline:
    """Writes reported contents through the spider's store once the run has
    finished. An aborted run leaves the baseline untouched."""

    def __init__(self):
        self.pending = []

    @classmethod
    def from_crawler(cls, crawler):
        pipe = cls()
        crawler.signals.connect(pipe.spider_closed, signal=signals.spider_closed)
        return pipe

    def process_item(self, item, spider):
        self.pending.append(item)
        return item

    def spider_closed(self, spider, reason):
        store = getattr(spider, "store", None)
        if store is None:
            return
        try:
            if reason != "finished":
                logger.warning("Run ended with %r; not storing %d contents", reason, len(self.pending))
                return
            for content in self.pending:
                store.add_content(content)
            logger.info("Stored %d contents", len(self.pending))
        finally:
            store.close()


class NotificationPipeline:
    """Mails the list of reported contents after an incremental run."""

    def __init__(self, mailer, to, subject=SUBJECT):
        self.mailer = mailer
        self.to = to
        self.subject = subject
        self.contents = []

    @classmethod
    def from_crawler(cls, crawler):
        s = crawler.settings
        mailer = None
        if s.get("MAIL_HOST"):
            mailer = MailSender(
                smtphost=s.get("MAIL_HOST"),
                mailfrom=s.get("MAIL_FROM") or s.get("MAIL_USER"),
                smtpuser=s.get("MAIL_USER"),
                smtppass=s.get("MAIL_PASS"),
                smtpport=s.getint("MAIL_PORT", 25),
                smtptls=s.getbool("MAIL_TLS"),
                smtpssl=s.getbool("MAIL_SSL"),
            )
        pipe = cls(mailer, s.getlist("NPPA_NOTIFY_TO"))
        crawler.signals.connect(pipe.spider_closed, signal=signals.spider_closed)
        return pipe

    def process_item(self, item, spider):
        self.contents.append(item)
        return item

    def message(self):
        return Header(self.subject, "utf-8").encode(), notification_body(self.contents)

    def spider_closed(self, spider, reason):
        if reason != "finished" or getattr(spider, "full", False) or not self.contents:
            return None
        if self.mailer is None or not self.to:
            logger.info("send notification skip. mail host or recipients not set")
            return None
        subject, body = self.message()
        logger.info("sending notification for %d contents to %s", len(self.contents), ",".join(self.to))
        return self.mailer.send(to=self.to, subject=subject, body=body, charset="utf-8")
