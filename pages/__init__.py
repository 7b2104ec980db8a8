"""
Pages package - page objects for the events widget
"""
from .events_widget import EventsWidgetPage, CopyResult

__all__ = [
    'EventsWidgetPage',
    'CopyResult'
]
