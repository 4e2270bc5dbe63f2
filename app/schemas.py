from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class InventoryAIRequest(BaseModel):
    """Body of the AI inventory endpoints.

    Both fields are optional at parse time so the route can check the
    credential before reporting missing fields.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    tenant_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("tenantId", "restaurantId", "tenant_id"),
        description="Restaurant whose inventory is analysed",
    )
    request_type: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("requestType", "request_type"),
        description="reorder-forecast, cost-optimizer, waste-reduction or inventory-reports",
    )

    @field_validator("tenant_id", "request_type", mode="before")
    @classmethod
    def _coerce_to_text(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, (dict, list)):
            return None
        text = str(value).strip()
        return text or None


class HealthResponse(BaseModel):
    status: str = "ok"
