from typing import Annotated, ClassVar, Optional, Union

from pydantic import (
    BaseModel,
    Field,
    PositiveInt,
    ValidationError,
    field_validator,
    model_validator,
)

from ...common.enums import DetectorChoice, Interpolation
from ...common.exceptions import FeatureAlignValidationException


class FeatureAlignInputValidation(BaseModel):
    """Base input validation raising FeatureAlignValidationException."""

    def __init__(self, **data):
        """Initialize with custom validation error handling."""
        try:
            super().__init__(**data)
        except (ValidationError, ValueError) as e:
            # Convert Pydantic validation errors to custom exceptions
            if isinstance(e, ValidationError) and hasattr(e, "errors"):
                errors = e.errors()
            else:
                errors = [{"msg": str(e), "type": "value_error", "loc": ["unknown"]}]
            raise FeatureAlignValidationException(
                self._format_validation_errors(errors)
            ) from e

    @staticmethod
    def _format_validation_errors(errors: list) -> str:
        """Format Pydantic validation errors into user-friendly messages."""
        formatted_errors = []

        for error in errors:
            loc = error.get("loc") or ["unknown"]
            field = loc[0] if isinstance(loc[-1], int) else loc[-1]
            error_type = error.get("type", "unknown")
            message = error.get("msg", "Validation error")
            input_value = error.get("input", "unknown")

            if error_type == "enum":
                formatted_errors.append(f"{field}: unsupported choice '{input_value}'.")
            else:
                formatted_errors.append(f"{field}: {message}")

        return "; ".join(formatted_errors)


class ExtractionInputValidation(FeatureAlignInputValidation):
    """Input validation model for extract_features."""

    OVERRIDE_FIELDS: ClassVar[tuple[str, ...]] = (
        "initial_sigma",
        "steps",
        "fd_size",
        "fd_bins",
        "min_octave_size",
        "max_octave_size",
    )

    detector: Annotated[
        DetectorChoice,
        Field(description="Feature detector to use. SIFT and MOPS are supported."),
    ]
    initial_sigma: Optional[Annotated[float, Field(gt=0)]] = Field(
        default=None, description="Blur of the first scale-space level"
    )
    steps: Optional[Annotated[int, Field(ge=1, le=16)]] = Field(
        default=None, description="Scale steps per octave"
    )
    fd_size: Optional[Annotated[int, Field(ge=1, le=64)]] = Field(
        default=None, description="Descriptor grid size"
    )
    fd_bins: Optional[Annotated[int, Field(ge=1, le=64)]] = Field(
        default=None, description="Orientation bins per SIFT descriptor cell"
    )
    min_octave_size: Optional[Annotated[int, Field(ge=4)]] = Field(
        default=None, description="Smallest octave side length to process"
    )
    max_octave_size: Optional[Annotated[int, Field(ge=8)]] = Field(
        default=None, description="Largest octave side length to process"
    )

    @model_validator(mode="after")
    def validate_octave_sizes(self):
        """Validate that the octave size range is not empty."""
        if (
            self.min_octave_size is not None
            and self.max_octave_size is not None
            and self.min_octave_size > self.max_octave_size
        ):
            raise ValueError(
                f"min_octave_size ({self.min_octave_size}) exceeds "
                f"max_octave_size ({self.max_octave_size})"
            )
        return self

    def overrides(self) -> dict:
        """Detector config fields that were given explicitly."""
        return {
            name: getattr(self, name)
            for name in self.OVERRIDE_FIELDS
            if getattr(self, name) is not None
        }


class FeatureMatchingInputValidation(FeatureAlignInputValidation):
    """Input validation model for match_features."""

    rod: Annotated[
        float,
        Field(gt=0, le=1, description="Maximal ratio of best to second best distance"),
    ]
    max_scale_deviation: Optional[Annotated[float, Field(ge=1)]] = Field(
        default=None, description="Maximal scale ratio between matched features"
    )


class BlockMatchingInputValidation(FeatureAlignInputValidation):
    """Input validation model for match_blocks."""

    scale: Annotated[
        float,
        Field(gt=0, le=1, description="Resolution at which blocks are compared"),
    ]
    block_radius: tuple[PositiveInt, PositiveInt]
    search_radius: tuple[PositiveInt, PositiveInt]
    min_r: Annotated[
        float,
        Field(ge=-1, le=1, description="Minimal accepted correlation coefficient"),
    ]
    rod: Annotated[
        float,
        Field(gt=0, description="Maximal ratio of second best to best (1 + r)"),
    ]
    max_curvature: Annotated[
        float,
        Field(gt=0, description="Maximal principal curvature ratio of the peak"),
    ]
    max_workers: Optional[PositiveInt] = None

    @field_validator("block_radius", "search_radius", mode="before")
    @classmethod
    def expand_radius(cls, v: Union[int, tuple[int, int]]):
        """Accept a single radius for both axes."""
        if isinstance(v, int):
            return (v, v)
        return v


class MeshMappingInputValidation(FeatureAlignInputValidation):
    """Input validation model for warp_image."""

    interpolation: Interpolation
    num_threads: Optional[PositiveInt] = None
    target_size: Optional[tuple[PositiveInt, PositiveInt]] = None
