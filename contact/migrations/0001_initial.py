from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='ContactSubmission',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.TextField(help_text='Name of the person contacting us (HTML-escaped)')),
                ('email', models.TextField(help_text='Normalized email address for follow-up')),
                ('business', models.TextField(help_text='Type of business (HTML-escaped)')),
                ('revenue', models.TextField(blank=True, default='', help_text='Revenue range, empty when not given (HTML-escaped)')),
                ('automation', models.TextField(help_text='What the person wants automated (HTML-escaped)')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, help_text='When the submission was stored')),
                ('ip_address', models.GenericIPAddressField(blank=True, help_text='IP address of the submitter', null=True)),
                ('user_agent', models.TextField(blank=True, default='', help_text='Browser user agent of the submitter')),
            ],
            options={
                'verbose_name': 'Contact Submission',
                'verbose_name_plural': 'Contact Submissions',
                'db_table': 'contacts',
                'ordering': ['-created_at', '-id'],
                'indexes': [models.Index(fields=['business'], name='contacts_business_idx')],
            },
        ),
    ]
