from rest_framework import serializers

from .projection import format_time, task_status


class TaskSerializer(serializers.Serializer):
    id = serializers.CharField(read_only=True)
    description = serializers.CharField()
    team = serializers.CharField(max_length=100)
    prerequisites = serializers.ListField(child=serializers.CharField(), required=False)
    # range checks are left out on purpose: out-of-range values flow into the schedule as-is
    expectedTime = serializers.FloatField(source='expected_time')
    completionPercentage = serializers.IntegerField(source='completion_percentage', required=False, allow_null=True)
    estimatedStartDate = serializers.DateField(source='estimated_start_date', required=False, allow_null=True)
    actualStartDate = serializers.DateField(source='actual_start_date', required=False, allow_null=True)
    peopleInvolved = serializers.ListField(child=serializers.CharField(), source='people_involved', required=False)
    workingLocation = serializers.CharField(source='working_location', required=False, allow_blank=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)
    status = serializers.SerializerMethodField()
    expectedTimeDisplay = serializers.SerializerMethodField()

    def get_status(self, obj) -> str:
        return task_status(obj)

    def get_expectedTimeDisplay(self, obj) -> str:
        return format_time(obj.expected_time)


def serialize_tree(node):
    """Render a TaskGraph.build_tree node with serialized tasks."""
    if node is None:
        return None
    return {
        "task": TaskSerializer(node["task"]).data,
        "children": [serialize_tree(child) for child in node["children"]],
    }
