from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TIMEOUT = 10.0  # seconds

class TerminatorOptions(BaseModel):
    model_config = ConfigDict(strict=True, frozen=True)

    # seconds to wait for a cooperative close before destroying connections
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0, allow_inf_nan=False)
