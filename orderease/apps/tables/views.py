# tables/views.py

from ._views.TableView import TableView, TableDetailView, TableStatusView, FloorView, FloorDetailView
from ._views.ReservationView import ReservationView, ReservationDetailView, AvailableTablesView
