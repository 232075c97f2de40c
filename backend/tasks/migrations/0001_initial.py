from django.db import migrations, models

import tasks.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Task',
            fields=[
                ('id', models.CharField(default=tasks.models.generate_task_id, editable=False, max_length=32, primary_key=True, serialize=False)),
                ('description', models.TextField()),
                ('team', models.CharField(max_length=100)),
                ('prerequisites', models.JSONField(blank=True, default=list)),
                ('expected_time', models.FloatField()),
                ('completion_percentage', models.IntegerField(default=0)),
                ('estimated_start_date', models.DateField(blank=True, null=True)),
                ('actual_start_date', models.DateField(blank=True, null=True)),
                ('people_involved', models.JSONField(blank=True, default=list)),
                ('working_location', models.CharField(blank=True, default='', max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['created_at', 'id'],
            },
        ),
    ]
