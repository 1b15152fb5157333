# (c) Copyright Datacraft, 2026
from celery import Celery

from alumnet.core.config import get_settings

settings = get_settings()

app = Celery(
	"alumnet",
	broker=settings.celery_broker_url,
	backend=settings.celery_result_backend,
	include=["alumnet.core.tenancy.tasks"],
)

app.conf.update(
	task_acks_late=True,
	task_reject_on_worker_lost=True,
	worker_prefetch_multiplier=1,
	beat_schedule={
		"purge-due-tenants": {
			"task": "tenancy.purge_due_tenants",
			"schedule": 3600.0,
		},
	},
)
