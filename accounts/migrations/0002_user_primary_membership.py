import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        ("evaluation_app", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="user",
            name="primary_membership",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to="evaluation_app.userdepartment",
            ),
        ),
    ]
