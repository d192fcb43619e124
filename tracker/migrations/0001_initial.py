import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('accounts', '0001_initial'),
        ('programs', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Task',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('instance_task_id', models.CharField(blank=True, default='', max_length=64)),
                ('day_index', models.IntegerField(blank=True, help_text='Program day this task came from', null=True)),
                ('label', models.CharField(max_length=255)),
                ('is_primary', models.BooleanField(default=False, help_text='Primary tasks go to Daily Focus')),
                ('task_type', models.CharField(choices=[('task', 'Task'), ('habit', 'Habit'), ('learning', 'Learning'), ('admin', 'Admin')], default='task', max_length=20)),
                ('estimated_minutes', models.PositiveIntegerField(blank=True, null=True)),
                ('notes', models.TextField(blank=True, null=True)),
                ('tag', models.CharField(blank=True, max_length=60, null=True)),
                ('source', models.CharField(choices=[('user', 'User'), ('program', 'Program')], default='user', max_length=20)),
                ('list_type', models.CharField(choices=[('focus', 'Daily Focus'), ('backlog', 'Backlog')], default='focus', max_length=20)),
                ('date', models.DateField(blank=True, null=True)),
                ('completed', models.BooleanField(default=False)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('instance', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='member_tasks', to='programs.programinstance')),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to='accounts.organization')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tasks', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'tasks',
                'ordering': ['date', '-is_primary', 'id'],
                'indexes': [
                    models.Index(fields=['user', 'instance', 'day_index'], name='task_user_instance_day_idx'),
                    models.Index(fields=['user', 'date'], name='task_user_date_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('instance__isnull', False)), fields=('user', 'instance', 'day_index', 'instance_task_id'), name='unique_task_per_instance_template'),
                ],
            },
        ),
    ]
