# pos/views.py

from ._views.TableLedgerView import TableCartView, KotView, TableBatchView, BatchItemView, SettleTableView
from ._views.PosSessionView import PosSessionView, CurrentPosSessionView, ClosePosSessionView
