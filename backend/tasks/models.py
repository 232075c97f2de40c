from django.db import models
from django.utils.crypto import get_random_string

ID_PREFIX = "task-"
ID_CHARS = "abcdefghijklmnopqrstuvwxyz0123456789"


def generate_task_id() -> str:
    return ID_PREFIX + get_random_string(9, allowed_chars=ID_CHARS)


class Task(models.Model):
    id = models.CharField(primary_key=True, max_length=32, default=generate_task_id, editable=False)
    description = models.TextField()
    team = models.CharField(max_length=100)
    prerequisites = models.JSONField(default=list, blank=True)  # ordered list of task ids
    expected_time = models.FloatField()  # days
    completion_percentage = models.IntegerField(default=0)
    estimated_start_date = models.DateField(null=True, blank=True)
    actual_start_date = models.DateField(null=True, blank=True)
    people_involved = models.JSONField(default=list, blank=True)
    working_location = models.CharField(max_length=255, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return self.description
