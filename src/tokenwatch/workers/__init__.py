"""Background workers.

Workers:
    - FeedPollingWorker: polls the token feed and evaluates each batch
"""

from tokenwatch.workers.feed_poller import FeedPollingWorker

__all__ = ["FeedPollingWorker"]
