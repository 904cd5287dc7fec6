"""
Pydantic Schemas für den Auftrag-Core
"""
from auftrag_core.schemas.actor import Actor

from auftrag_core.schemas.order import (
    CamelModel, ActorBody,
    PositionCreate, PositionUpdate, PositionPicking, PositionResponse, EmptyGoodsItem,
    OrderCreate, OrderResponse, OrderListResponse,
    CompletePickingRequest, ForceCompletePickingRequest, CancelRequest,
    StatusOverride, AuditLogResponse,
)

from auftrag_core.schemas.surcharge import (
    SurchargeUpsert, SurchargeResponse, EffectivePriceResponse,
    MassSurchargeRequest, BulkSelection, BulkAction, BulkEditRequest, BulkEditResult,
)
