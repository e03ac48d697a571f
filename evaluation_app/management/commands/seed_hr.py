# evaluation_app/management/commands/seed_hr.py
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from accounts.models import Role
from evaluation_app import models as m
from evaluation_app.services.memberships import assign_user_to_department

User = get_user_model()

DEFAULT_PASSWORD = "ChangeMe!2024"


class Command(BaseCommand):
    help = "Seed database with dummy HR back-office data."

    def add_arguments(self, parser):
        parser.add_argument("--password", default=DEFAULT_PASSWORD, help="Password for every seeded user.")

    @transaction.atomic
    def handle(self, *args, **options):
        now = timezone.now()
        password = options["password"]

        # helper
        def mk_user(username, name, email, role):
            user, created = User.objects.get_or_create(
                username=username,
                defaults=dict(name=name, email=email, role=role),
            )
            if created:
                user.set_password(password)
                user.save(update_fields=["password"])
            return user

        # 1) users
        admin_u = mk_user("admin", "Alice Admin", "admin@acme.com", Role.ADMIN)
        md_u    = mk_user("md",    "Bob MD",      "bob@acme.com",   Role.MD)
        mgr_u   = mk_user("carol", "Carol Manager", "carol@acme.com", Role.MANAGER)
        staff_u = mk_user("dave",  "Dave Staff",  "dave@acme.com",  Role.STAFF)

        # 2) organisation + departments
        acme, _ = m.Organization.objects.get_or_create(
            code="ACME", defaults=dict(name_th="แอคมี", name_en="ACME Corp"),
        )
        sales, _ = m.Department.objects.get_or_create(
            code="SALES", defaults=dict(name_th="ฝ่ายขาย", name_en="Sales", organization=acme),
        )
        m.Department.objects.get_or_create(
            code="RND", defaults=dict(name_th="วิจัยและพัฒนา", name_en="R&D", organization=acme),
        )

        # 3) placements (skip users that already have one)
        placements = (
            (admin_u, m.PositionLevel.MANAGER, "IT Manager"),
            (md_u,    m.PositionLevel.MD,      "Managing Director"),
            (mgr_u,   m.PositionLevel.MANAGER, "Sales Manager"),
            (staff_u, m.PositionLevel.STAF,    "Sales Rep"),
        )
        for user, level, title in placements:
            if not m.UserDepartment.objects.filter(user=user, is_active=True).exists():
                assign_user_to_department(admin_u, user.pk, sales.pk, level, position_name=title)

        # 4) an open cycle
        cycle, _ = m.EvalCycle.objects.get_or_create(
            code=f"{now.year}-MID",
            defaults=dict(
                year=now.year,
                stage=m.CycleStage.MID_YEAR,
                open_at=now - timedelta(days=1),
                close_at=now + timedelta(days=30),
            ),
        )

        # 5) a draft for the staff member
        m.Evaluation.objects.get_or_create(
            cycle=cycle,
            owner=staff_u,
            defaults=dict(
                created_by=staff_u,
                manager=mgr_u,
                md=md_u,
                stage=cycle.stage,
                type=m.EvalType.OPERATIONAL,
            ),
        )

        self.stdout.write(self.style.SUCCESS("✅ Dummy data seeded successfully."))
