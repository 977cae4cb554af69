# One-time redemption stamp for login PINs

from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('authentication', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='loginpin',
            name='redeemed_at',
            field=models.DateTimeField(blank=True, null=True),
        ),
    ]
