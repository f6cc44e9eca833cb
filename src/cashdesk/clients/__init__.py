from .print_client import PrintClient
from .sessions_client import SessionsClient
from .tabs_client import TabsClient
from .tender_client import TenderClient
from .transactions_client import TransactionsClient

__all__ = [
    "PrintClient",
    "SessionsClient",
    "TabsClient",
    "TenderClient",
    "TransactionsClient",
]
