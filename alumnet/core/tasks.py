# (c) Copyright Datacraft, 2026
import logging

logger = logging.getLogger(__name__)


def send_task(*args, **kwargs):
	"""Queue a job on the worker without importing its code."""
	from alumnet.celery_app import app as celery_app

	logger.debug(f"Send task {args} {kwargs}")
	return celery_app.send_task(*args, **kwargs)
