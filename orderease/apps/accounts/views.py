# accounts/views.py

from ._views.login import UserLoginView
from ._views.token_refresh import CustomTokenRefreshView
from ._views.staff import StaffView, StaffDetailView, StaffByBranchView
