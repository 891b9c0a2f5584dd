from .token import Token, TokenData
from .customer import (
    CustomerBase,
    CustomerCreate,
    CustomerUpdate,
    Customer,
    CustomerWithOrderCount,
)
from .order import (
    OrderBase,
    OrderCreateInternal,
    OrderUpdate,
    Order,
    OrderWithCustomer,
    OrderPublic,
    OrderStatusResponse,
)
from .destination import Destination, Plan
from .checkout import CheckoutRequest, CheckoutResponse
from .webhook import CheckoutMetadata, CheckoutCompletedEvent
from .fulfillment import (
    FulfillmentResult,
    OrderActionRequest,
    RetryOrderRequest,
    OrderActionResponse,
    AdminStats,
)
