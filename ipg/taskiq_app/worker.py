"""Process entrypoints for the collection workers.

    taskiq worker ipg.taskiq_app.worker:broker
    taskiq scheduler ipg.taskiq_app.worker:scheduler
"""

from ipg.taskiq_app.broker import broker, scheduler
from ipg.taskiq_app.tasks import collect_listings

__all__ = ["broker", "collect_listings", "scheduler"]
