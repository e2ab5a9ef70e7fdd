"""
Pydantic models for API requests.
These define the contract between the API and external clients.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StartWorkflowRequest(_CamelModel):
    """Body of start-order and start-invoice.

    start-invoice reuses ``orderId`` as the invoice id.
    """

    order_id: str = ""


class StartBothWorkflowsRequest(_CamelModel):
    order_id: str = ""
    invoice_id: str = ""
