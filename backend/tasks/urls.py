from django.urls import path

from . import views

urlpatterns = [
    path('tasks/', views.TaskList.as_view(), name='task-list'),
    path('tasks/recent/', views.RecentTasks.as_view(), name='task-recent'),
    path('tasks/roots/', views.RootTrees.as_view(), name='task-roots'),
    path('tasks/<str:task_id>/', views.TaskDetail.as_view(), name='task-detail'),
    path('tasks/<str:task_id>/tree/', views.TaskTree.as_view(), name='task-tree'),
    path('tasks/<str:task_id>/critical-path/', views.TaskCriticalPath.as_view(), name='task-critical-path'),
    path('project/duration/', views.ProjectDuration.as_view(), name='project-duration'),
    path('dashboard/', views.Dashboard.as_view(), name='dashboard'),
]
