from django.db.models.signals import pre_save
from django.dispatch import receiver

from evaluation_app.models import Evaluation
from evaluation_app.services.score import apply_scores


# Stored scores always follow the ratings on ORM saves.
# State-machine writes go through QuerySet.update and set scores themselves.
@receiver(pre_save, sender=Evaluation)
def _recompute_scores(sender, instance: Evaluation, raw=False, **kwargs):
    if raw:
        return
    apply_scores(instance)
