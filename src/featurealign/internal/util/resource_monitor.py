"""Resource monitoring utilities for memory and worker pool sizing."""

import logging
from typing import Optional

import psutil

from ...common.exceptions import FeatureAlignMemoryException

logger = logging.getLogger(__name__)


class ResourceMonitor:
    """Monitor system resources and provide early warnings for potential issues."""

    # Default thresholds (can be overridden)
    MEMORY_WARNING_THRESHOLD = 0.85  # 85% memory usage
    MEMORY_CRITICAL_THRESHOLD = 0.95  # 95% memory usage

    @staticmethod
    def get_memory_info() -> dict:
        """Get detailed memory information."""
        memory = psutil.virtual_memory()
        return {
            "total_gb": memory.total / (1024**3),
            "available_gb": memory.available / (1024**3),
            "used_gb": memory.used / (1024**3),
            "percent": memory.percent,
            "free_gb": memory.free / (1024**3),
        }

    @staticmethod
    def available_workers() -> int:
        """Number of worker threads matching the available hardware parallelism."""
        return psutil.cpu_count(logical=True) or 1

    @classmethod
    def check_memory_availability(
        cls,
        estimated_usage_gb: Optional[float] = None,
        warning_threshold: Optional[float] = None,
        critical_threshold: Optional[float] = None,
    ) -> None:
        """Check if sufficient memory is available.

        Args:
            estimated_usage_gb: Estimated additional memory needed in GB
            warning_threshold: Memory usage threshold for warnings (0.0-1.0)
            critical_threshold: Memory usage threshold for critical errors (0.0-1.0)

        Raises:
            FeatureAlignMemoryException: If memory is critically low
        """
        warning_threshold = warning_threshold or cls.MEMORY_WARNING_THRESHOLD
        critical_threshold = critical_threshold or cls.MEMORY_CRITICAL_THRESHOLD

        memory_info = cls.get_memory_info()
        current_usage = memory_info["percent"] / 100.0

        # Check if adding estimated usage would exceed critical threshold
        if estimated_usage_gb:
            estimated_usage_percent = estimated_usage_gb / memory_info["total_gb"]
            projected_usage = current_usage + estimated_usage_percent

            if projected_usage > critical_threshold:
                raise FeatureAlignMemoryException(
                    f"Projected memory usage ({projected_usage:.1%}) would exceed "
                    f"critical threshold ({critical_threshold:.1%}). "
                    f"Available: {memory_info['available_gb']:.1f}GB, "
                    f"Estimated needed: {estimated_usage_gb:.1f}GB"
                )

        if current_usage > critical_threshold:
            raise FeatureAlignMemoryException(
                f"Memory usage ({current_usage:.1%}) exceeds critical threshold "
                f"({critical_threshold:.1%}). Available: {memory_info['available_gb']:.1f}GB"
            )
        elif current_usage > warning_threshold:
            logger.warning(
                f"Memory usage ({current_usage:.1%}) is high. Available: {memory_info['available_gb']:.1f}GB"
            )

    @classmethod
    def estimate_scale_space_memory(
        cls,
        width: int,
        height: int,
        steps: int = 3,
        dtype_bytes: int = 4,
    ) -> float:
        """Estimate memory usage of a complete scale-space pyramid.

        Args:
            width: Base image width in pixels
            height: Base image height in pixels
            steps: Scale steps per octave
            dtype_bytes: Bytes per sample (4 for float32)

        Returns:
            Estimated memory usage in GB
        """
        # Blurred levels, DoG levels, gradient magnitude and orientation per level
        arrays_per_octave = (steps + 3) + (steps + 2) + 2 * (steps + 3)

        # Octaves shrink by 4 in area, the sum converges to 4/3 of the base octave
        base_size = width * height * dtype_bytes
        pyramid_size = base_size * arrays_per_octave * 4.0 / 3.0

        return pyramid_size / (1024**3)

    @classmethod
    def log_resource_status(cls, context: str = "") -> None:
        """Log current resource status.

        Args:
            context: Context description for the log message
        """
        memory_info = cls.get_memory_info()
        logger.info(
            f"{context} - Memory: {memory_info['used_gb']:.1f}GB/{memory_info['total_gb']:.1f}GB "
            f"({memory_info['percent']:.1f}%), Available: {memory_info['available_gb']:.1f}GB"
        )


def check_resources_before_extraction(width: int, height: int, steps: int) -> None:
    """Resource check before building a scale-space pyramid.

    Args:
        width: Width of the pyramid base image
        height: Height of the pyramid base image
        steps: Scale steps per octave

    Raises:
        FeatureAlignMemoryException: If memory is insufficient
    """
    estimated_memory_gb = ResourceMonitor.estimate_scale_space_memory(
        width, height, steps
    )
    ResourceMonitor.check_memory_availability(estimated_memory_gb)
    logger.debug(
        f"Scale space for {width}x{height} needs about {estimated_memory_gb:.3f}GB"
    )
