# customers/views.py

from ._views.CustomerView import CustomerView, CustomerDetailView
