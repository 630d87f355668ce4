from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=200)),
                ("mobile", models.CharField(db_index=True, max_length=20)),
                ("address", models.CharField(blank=True, default="", max_length=300)),
            ],
            options={
                "ordering": ["name", "id"],
            },
        ),
    ]
