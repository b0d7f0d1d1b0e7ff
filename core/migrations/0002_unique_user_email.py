from django.conf import settings
from django.db import migrations


class Migration(migrations.Migration):

    dependencies = [
        ('core', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    # Login looks accounts up by email, so no two accounts may share one.
    # Blank emails (e.g. superusers created without one) are exempt.
    operations = [
        migrations.RunSQL(
            sql=(
                "CREATE UNIQUE INDEX core_user_email_ci_uniq "
                "ON auth_user (LOWER(email)) WHERE email <> ''"
            ),
            reverse_sql="DROP INDEX core_user_email_ci_uniq",
        ),
    ]
