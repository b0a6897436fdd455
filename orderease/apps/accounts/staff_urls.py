from django.urls import path

from .views import StaffView, StaffDetailView, StaffByBranchView

urlpatterns = [
    path('', StaffView.as_view(), name='staff'),
    path('<int:staff_id>/', StaffDetailView.as_view(), name='staff_detail'),
    path('branch/<int:branch_id>/', StaffByBranchView.as_view(), name='staff_by_branch'),
]
