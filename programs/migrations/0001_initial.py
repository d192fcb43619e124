import django.db.models.deletion
import programs.models
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('accounts', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Program',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('program_type', models.CharField(choices=[('group', 'Group'), ('individual', 'Individual')], default='group', max_length=20)),
                ('length_days', models.PositiveIntegerField(default=programs.models.default_length_days)),
                ('include_weekends', models.BooleanField(default=True, help_text='If disabled, program days only fall on Mon-Fri')),
                ('task_distribution', models.CharField(choices=[('spread', 'Spread across the week'), ('repeat-daily', 'Repeat daily'), ('first_day', 'First day of the week')], default='spread', help_text="Fallback distribution for weeks that don't set their own", max_length=20)),
                ('default_habits', models.JSONField(blank=True, default=list)),
                ('squad_capacity', models.PositiveIntegerField(blank=True, help_text='Max members per squad (group programs)', null=True)),
                ('weeks', models.JSONField(blank=True, default=list, help_text='Embedded template weeks. When empty, ProgramWeek rows are used.')),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='programs', to='accounts.organization')),
            ],
            options={
                'db_table': 'programs',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='ProgramCohort',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('start_date', models.DateField()),
                ('end_date', models.DateField()),
                ('enrollment_open', models.BooleanField(default=True)),
                ('max_enrollment', models.PositiveIntegerField(blank=True, null=True)),
                ('current_enrollment', models.PositiveIntegerField(default=0)),
                ('status', models.CharField(choices=[('upcoming', 'Upcoming'), ('active', 'Active'), ('completed', 'Completed'), ('archived', 'Archived')], default='upcoming', max_length=20)),
                ('grace_period_end_date', models.DateField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to='accounts.organization')),
                ('program', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='cohorts', to='programs.program')),
            ],
            options={
                'db_table': 'program_cohorts',
                'ordering': ['start_date', 'created_at'],
            },
        ),
        migrations.CreateModel(
            name='ProgramEnrollment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('squad_id', models.CharField(blank=True, default='', max_length=64)),
                ('amount_paid', models.PositiveIntegerField(default=0, help_text='Amount in cents')),
                ('paid_at', models.DateTimeField(blank=True, null=True)),
                ('payment_reference', models.CharField(blank=True, default='', max_length=120)),
                ('status', models.CharField(choices=[('upcoming', 'Upcoming'), ('active', 'Active'), ('completed', 'Completed'), ('stopped', 'Stopped')], default='upcoming', max_length=20)),
                ('started_at', models.DateField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('stopped_at', models.DateTimeField(blank=True, null=True)),
                ('last_assigned_day_index', models.IntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('cohort', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='enrollments', to='programs.programcohort')),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to='accounts.organization')),
                ('program', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='enrollments', to='programs.program')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='program_enrollments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'program_enrollments',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['cohort', 'status'], name='enrollment_cohort_status_idx'),
                    models.Index(fields=['program', 'status'], name='enrollment_program_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ProgramWeek',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('week_number', models.IntegerField()),
                ('module_id', models.CharField(blank=True, default='', max_length=64)),
                ('order', models.IntegerField(default=0)),
                ('start_day_index', models.IntegerField(blank=True, null=True)),
                ('end_day_index', models.IntegerField(blank=True, null=True)),
                ('name', models.CharField(blank=True, default='', max_length=200)),
                ('theme', models.CharField(blank=True, default='', max_length=200)),
                ('description', models.TextField(blank=True, default='')),
                ('weekly_prompt', models.TextField(blank=True, default='')),
                ('weekly_tasks', models.JSONField(blank=True, default=list)),
                ('weekly_habits', models.JSONField(blank=True, default=list)),
                ('current_focus', models.JSONField(blank=True, default=list)),
                ('notes', models.JSONField(blank=True, default=list)),
                ('manual_notes', models.TextField(blank=True, default='')),
                ('distribution', models.CharField(blank=True, default='', max_length=20)),
                ('coach_recording_url', models.URLField(blank=True, default='')),
                ('coach_recording_notes', models.TextField(blank=True, default='')),
                ('linked_summary_ids', models.JSONField(blank=True, default=list)),
                ('linked_call_event_ids', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to='accounts.organization')),
                ('program', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='template_weeks', to='programs.program')),
            ],
            options={
                'db_table': 'program_weeks',
                'ordering': ['week_number'],
                'unique_together': {('program', 'week_number')},
            },
        ),
        migrations.CreateModel(
            name='ProgramInstance',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('instance_type', models.CharField(choices=[('cohort', 'Cohort'), ('individual', 'Individual')], max_length=20)),
                ('start_date', models.DateField(blank=True, null=True)),
                ('end_date', models.DateField(blank=True, null=True)),
                ('include_weekends', models.BooleanField(default=True)),
                ('weeks', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('cohort', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='instances', to='programs.programcohort')),
                ('enrollment', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='instances', to='programs.programenrollment')),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to='accounts.organization')),
                ('program', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='instances', to='programs.program')),
            ],
            options={
                'db_table': 'program_instances',
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('cohort__isnull', False)), fields=('program', 'cohort'), name='unique_instance_per_cohort'),
                    models.UniqueConstraint(condition=models.Q(('enrollment__isnull', False)), fields=('program', 'enrollment'), name='unique_instance_per_enrollment'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ClientProgramWeek',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('program_week_id', models.CharField(help_text='Id of the template week this copy follows', max_length=64)),
                ('week_number', models.IntegerField()),
                ('module_id', models.CharField(blank=True, max_length=64, null=True)),
                ('order', models.IntegerField(blank=True, null=True)),
                ('start_day_index', models.IntegerField(blank=True, null=True)),
                ('end_day_index', models.IntegerField(blank=True, null=True)),
                ('name', models.CharField(blank=True, max_length=200, null=True)),
                ('theme', models.CharField(blank=True, max_length=200, null=True)),
                ('description', models.TextField(blank=True, null=True)),
                ('weekly_prompt', models.TextField(blank=True, null=True)),
                ('weekly_tasks', models.JSONField(blank=True, null=True)),
                ('weekly_habits', models.JSONField(blank=True, null=True)),
                ('current_focus', models.JSONField(blank=True, null=True)),
                ('notes', models.JSONField(blank=True, null=True)),
                ('distribution', models.CharField(blank=True, max_length=20, null=True)),
                ('linked_summary_ids', models.JSONField(blank=True, default=list)),
                ('linked_call_event_ids', models.JSONField(blank=True, default=list)),
                ('coach_recording_url', models.URLField(blank=True, null=True)),
                ('coach_recording_notes', models.TextField(blank=True, null=True)),
                ('manual_notes', models.TextField(blank=True, null=True)),
                ('has_local_changes', models.BooleanField(default=False)),
                ('last_synced_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('enrollment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='client_weeks', to='programs.programenrollment')),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to='accounts.organization')),
                ('program', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to='programs.program')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='client_program_weeks', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'client_program_weeks',
                'ordering': ['enrollment', 'week_number'],
                'unique_together': {('enrollment', 'program_week_id')},
            },
        ),
    ]
