"""Application layer interfaces (Ports)"""

from src.service.seating.app.interface.i_change_notifier import IChangeNotifier
from src.service.seating.app.interface.i_record_store import IRecordStore, Mutation, Record

__all__ = ['IChangeNotifier', 'IRecordStore', 'Mutation', 'Record']
