import logging
import threading
from typing import Optional, Union

import numpy as np

from .common.buffer import FloatBuffer2D, as_array
from .common.enums import Interpolation
from .internal.models.map.mapping import TransformMeshMapping
from .internal.models.map.mesh import TransformMesh
from .internal.models.validation import MeshMappingInputValidation

logger = logging.getLogger(__name__)


def warp_image(
    source: Union[FloatBuffer2D, np.ndarray],
    mesh: TransformMesh,
    *,
    target_size: Optional[tuple[int, int]] = None,
    inverse: bool = False,
    interpolation: Interpolation = Interpolation.NEAREST,
    num_threads: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
) -> FloatBuffer2D:
    """Warp source through a triangle mesh.

    The forward map fills target pixels inside the mesh's target triangles by
    looking up the inverse affine of each triangle. The inverse map fills pixels
    inside the source triangles through the forward affine.

    Args:
        source: Image to warp
        mesh: Triangle mesh transform
        target_size: (width, height) of the result, the source size if None
        inverse: Map through the inverse of the mesh
        interpolation: Nearest neighbor or bilinear sampling
        num_threads: Worker threads, the number of CPUs if None
        cancel_event: Stops the workers when set

    Returns:
        Warped image; pixels not covered by any triangle are 0
    """
    validated_input = MeshMappingInputValidation(
        interpolation=interpolation,
        num_threads=num_threads,
        target_size=target_size,
    )
    data = as_array(source)
    width, height = validated_input.target_size or (data.shape[1], data.shape[0])
    target = FloatBuffer2D(width, height)

    mapping = TransformMeshMapping(mesh)
    map_fn = mapping.map_inverse if inverse else mapping.map
    map_fn(
        data,
        target.data,
        interpolation=validated_input.interpolation,
        num_threads=validated_input.num_threads,
        cancel_event=cancel_event,
    )

    logger.info(
        f"Warped {data.shape[1]}x{data.shape[0]} image through "
        f"{len(mesh.triangles)} triangles into {width}x{height}"
    )
    return target
