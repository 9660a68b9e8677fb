# Define here the models for your scraped items
#
# See documentation in:
# https://docs.scrapy.org/en/latest/topics/items.html

import scrapy


class ApprovalItem(scrapy.Item):
    # Parent content
    channel_id = scrapy.Field()
    content_id = scrapy.Field()

    seq = scrapy.Field()               # kept as text, e.g. "1" or "01"
    name = scrapy.Field()
    catalog = scrapy.Field()           # online / changed / revoked channels
    publisher = scrapy.Field()
    operator = scrapy.Field()
    approval_number = scrapy.Field()   # e.g. 国新出审[2024]12号
    isbn = scrapy.Field()
    date = scrapy.Field()              # raw text as seen
    change_info = scrapy.Field()       # yxspbgxx only
    revoke_info = scrapy.Field()       # yxspcxxx only


class ContentItem(scrapy.Item):
    # Core identity
    channel_id = scrapy.Field()        # e.g. jkwlyxspxx
    id = scrapy.Field()                # basename of the detail URL path
    title = scrapy.Field()
    url = scrapy.Field()               # relative (section scheme) or absolute (channels scheme)
    date = scrapy.Field()              # listing label with brackets trimmed

    items = scrapy.Field()             # [ApprovalItem] in table order
