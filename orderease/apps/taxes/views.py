# taxes/views.py

from ._views.TaxView import TaxView, TaxCountryView
