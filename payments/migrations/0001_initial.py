from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='PaymentAttempt',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('registration_id', models.CharField(db_index=True, max_length=64)),
                ('event_id', models.CharField(max_length=64)),
                ('session_key', models.CharField(blank=True, db_index=True, max_length=40)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('currency', models.CharField(default='INR', max_length=3)),
                ('status', models.CharField(choices=[('loading-gateway', 'Loading payment gateway'), ('creating-order', 'Creating order'), ('ready', 'Ready to pay'), ('opening-widget', 'Payment window open'), ('verifying', 'Verifying payment'), ('succeeded', 'Succeeded'), ('failed', 'Failed')], default='loading-gateway', max_length=20)),
                ('failure_reason', models.TextField(blank=True)),
                ('order_id', models.CharField(blank=True, max_length=100)),
                ('key_id', models.CharField(blank=True, max_length=100)),
                ('backend_payment_id', models.CharField(blank=True, max_length=100)),
                ('provider_payment_id', models.CharField(blank=True, max_length=100)),
                ('prefill_name', models.CharField(blank=True, max_length=200)),
                ('prefill_email', models.EmailField(blank=True, max_length=254)),
                ('prefill_contact', models.CharField(blank=True, max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'payments_payment_attempt',
                'ordering': ['-created_at'],
            },
        ),
    ]
