"""
Shared activity name constants.

These names are used by the local activity registry, by the Temporal
activity registrations and by the workflow definitions, so a workflow step
always resolves to the same handler whichever backend executes it.
"""

CHARGE_CUSTOMER = "ChargeCustomer"
SHIP_ORDER = "ShipOrder"
SEND_CONFIRMATION_EMAIL = "SendConfirmationEmail"
GENERATE_INVOICE = "GenerateInvoice"
SEND_INVOICE_EMAIL = "SendInvoiceEmail"

ORDER_ACTIVITIES_GROUP = "OrderActivities"
INVOICE_ACTIVITIES_GROUP = "InvoiceActivities"


__all__ = [
    "CHARGE_CUSTOMER",
    "SHIP_ORDER",
    "SEND_CONFIRMATION_EMAIL",
    "GENERATE_INVOICE",
    "SEND_INVOICE_EMAIL",
    "ORDER_ACTIVITIES_GROUP",
    "INVOICE_ACTIVITIES_GROUP",
]
