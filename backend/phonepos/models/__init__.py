from .catalog import Category, CatalogItem
from .serials import SerialUnit
from .sales import Sale, SaleLine, SALE_STATUSES, PAYMENT_METHODS
from .service_tickets import ServiceTicket, TICKET_CHANNELS, TICKET_STATUSES
from .specs import PhoneSpecs, GenericSpecs, parse_specs

__all__ = [
    'Category', 'CatalogItem',
    'SerialUnit',
    'Sale', 'SaleLine', 'SALE_STATUSES', 'PAYMENT_METHODS',
    'ServiceTicket', 'TICKET_CHANNELS', 'TICKET_STATUSES',
    'PhoneSpecs', 'GenericSpecs', 'parse_specs',
]
