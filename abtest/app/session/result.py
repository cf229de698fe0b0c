from typing import Optional

from pydantic import BaseModel, Field, ConfigDict


class ABTestRun(BaseModel):
    """
    Outcome of running both comparison slots.

    IMPORTANT:
    - A failed generation is reported inside the slot output as an
      "Error: ..." string, not as executed=False
    - executed=False means a precondition failed and nothing ran
    """

    executed: bool = Field(
        ...,
        description="Whether the slots were run",
    )

    skipped_reason: Optional[str] = Field(
        None,
        description="Why the run did not start (present only when skipped)",
    )

    snapshot_a_name: Optional[str] = None
    snapshot_b_name: Optional[str] = None

    output_a: Optional[str] = Field(
        None,
        description="Generated text or error string for slot A",
    )

    output_b: Optional[str] = Field(
        None,
        description="Generated text or error string for slot B",
    )

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )
