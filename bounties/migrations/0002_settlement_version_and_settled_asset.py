from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [
        ("bounties", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="fundingsource",
            name="settlement_version",
            field=models.PositiveIntegerField(default=0),
        ),
        migrations.AddField(
            model_name="transaction",
            name="settled_asset",
            field=models.CharField(blank=True, default="", max_length=10),
        ),
    ]
