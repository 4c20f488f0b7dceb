import django.db.models.deletion
from django.db import migrations, models

import logbook.models


def day_child_fields():
    return [
        ('id', models.CharField(default=logbook.models.new_id, editable=False, max_length=64, primary_key=True, serialize=False)),
        ('owner_key', models.CharField(default='default', max_length=64)),
        ('day_key', models.CharField(max_length=10)),
        ('created_at', models.DateTimeField(auto_now_add=True)),
        ('day', models.ForeignKey(db_column='day_id', on_delete=django.db.models.deletion.CASCADE, related_name='+', to='logbook.day')),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Day',
            fields=[
                ('id', models.CharField(default=logbook.models.new_id, editable=False, max_length=64, primary_key=True, serialize=False)),
                ('owner_key', models.CharField(default='default', max_length=64)),
                ('day_key', models.CharField(max_length=10)),
                ('day_date', models.DateField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'days',
                'constraints': [models.UniqueConstraint(fields=('owner_key', 'day_key'), name='days_owner_day_key_uniq')],
            },
        ),
        migrations.CreateModel(
            name='JournalEntry',
            fields=[
                ('id', models.CharField(default=logbook.models.new_id, editable=False, max_length=64, primary_key=True, serialize=False)),
                ('owner_key', models.CharField(default='default', max_length=64)),
                ('title', models.CharField(max_length=200)),
                ('details', models.TextField()),
                ('attach', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'journal_entries',
                'indexes': [models.Index(fields=['owner_key', 'updated_at'], name='idx_journal_owner_updated')],
            },
        ),
        migrations.CreateModel(
            name='WeightEntry',
            fields=day_child_fields() + [
                ('recorded_at', models.DateTimeField()),
                ('weight_kg', models.FloatField()),
                ('body_fat_pct', models.FloatField(blank=True, null=True)),
                ('note', models.TextField(blank=True, null=True)),
            ],
            options={
                'db_table': 'weight_logs',
                'indexes': [models.Index(fields=['owner_key', 'day_key'], name='idx_weight_owner_day_key')],
            },
        ),
        migrations.CreateModel(
            name='SleepEntry',
            fields=day_child_fields() + [
                ('sleep_start_at', models.DateTimeField()),
                ('sleep_end_at', models.DateTimeField()),
                ('duration_min', models.IntegerField()),
                ('quality', models.CharField(blank=True, max_length=32, null=True)),
                ('note', models.TextField(blank=True, null=True)),
            ],
            options={
                'db_table': 'sleep_logs',
                'indexes': [models.Index(fields=['owner_key', 'day_key'], name='idx_sleep_owner_day_key')],
            },
        ),
        migrations.CreateModel(
            name='MealEntry',
            fields=day_child_fields() + [
                ('eaten_at', models.DateTimeField()),
                ('meal_type', models.CharField(max_length=32)),
                ('text', models.TextField()),
                ('items_json', models.TextField(blank=True, null=True)),
                ('calories_kcal', models.FloatField(blank=True, null=True)),
                ('note', models.TextField(blank=True, null=True)),
                ('ai_assisted', models.BooleanField(null=True)),
            ],
            options={
                'db_table': 'meal_logs',
                'indexes': [models.Index(fields=['owner_key', 'day_key'], name='idx_meal_owner_day_key')],
            },
        ),
        migrations.CreateModel(
            name='WorkoutEntry',
            fields=day_child_fields() + [
                ('performed_at', models.DateTimeField()),
                ('workout_type', models.CharField(max_length=64)),
                ('duration_min', models.IntegerField()),
                ('intensity', models.CharField(blank=True, max_length=32, null=True)),
                ('detail', models.TextField(blank=True, null=True)),
                ('ai_assisted', models.BooleanField(null=True)),
            ],
            options={
                'db_table': 'workout_logs',
                'indexes': [models.Index(fields=['owner_key', 'day_key'], name='idx_workout_owner_day_key')],
            },
        ),
    ]
