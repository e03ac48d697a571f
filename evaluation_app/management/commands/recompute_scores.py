# evaluation_app/management/commands/recompute_scores.py
from django.core.management.base import BaseCommand
from django.db import transaction

from evaluation_app.models import Evaluation, SCORE_FIELDS
from evaluation_app.services.score import compute_scores


class Command(BaseCommand):
    help = "Recompute stored section scores and totals for every evaluation."

    def add_arguments(self, parser):
        parser.add_argument("--cycle", help="Only evaluations of this cycle code.")
        parser.add_argument("--dry-run", action="store_true", help="Report changes without saving.")

    def handle(self, *args, **options):
        qs = Evaluation.objects.select_related("cycle").order_by("created_at")
        if options.get("cycle"):
            qs = qs.filter(cycle__code=options["cycle"])

        checked = changed = 0
        with transaction.atomic():
            for evaluation in qs.iterator():
                checked += 1
                scores = compute_scores(evaluation, evaluation.type)
                if all(getattr(evaluation, f) == scores[f] for f in SCORE_FIELDS):
                    continue
                changed += 1
                if not options["dry_run"]:
                    # plain update: leaves version and updated_at alone
                    Evaluation.objects.filter(pk=evaluation.pk).update(**scores)
                self.stdout.write(f"{evaluation.evaluation_id}: {evaluation.score_total} -> {scores['score_total']}")

        verb = "would change" if options["dry_run"] else "updated"
        self.stdout.write(self.style.SUCCESS(f"Checked {checked} evaluation(s), {verb} {changed}."))
