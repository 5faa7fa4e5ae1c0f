"""Scene-level ray intersection over the ground plane and the sphere buffer.

The spheres of a scene live in fixed-capacity Taichi fields (structure of
arrays). trace() tests the ground plane and then every stored sphere in
order, keeping the nearest hit. The scan is linear; trace(ray) -> hit is the
only entry point the integrator uses, so an acceleration structure could
replace the scan without touching callers.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from gpu_raytracing.scene.intersection import add_sphere, clear_scene, trace
    >>> clear_scene()
    >>> add_sphere((0.0, 1.0, 0.0), 1.0, albedo=(0.0, 0.0, 0.0), specular=(0.9, 0.6, 0.2))
    >>> # Inside a kernel:
    >>> # hit = trace(ray)
"""

from collections.abc import Sequence

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from gpu_raytracing.core.ray import Ray
from gpu_raytracing.geometry.hit_record import HitRecord, make_empty_hit
from gpu_raytracing.geometry.plane import intersect_ground_plane
from gpu_raytracing.geometry.sphere import Sphere, intersect_sphere

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Maximum number of spheres supported in the scene
MAX_SPHERES = 1024

# Sphere storage: Structure of Arrays layout for GPU efficiency
sphere_positions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_speculars = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Remove all spheres from the scene.

    Resets the sphere count to zero. The field data is not cleared but will
    be overwritten when new spheres are added.
    """
    num_spheres[None] = 0


def add_sphere(
    position: Sequence[float],
    radius: float,
    albedo: Sequence[float] = (0.0, 0.0, 0.0),
    specular: Sequence[float] = (0.0, 0.0, 0.0),
) -> int:
    """Add a sphere to the scene buffer.

    Args:
        position: The center of the sphere.
        radius: The radius of the sphere.
        albedo: Diffuse reflectance color.
        specular: Specular reflectance color.

    Returns:
        The index of the added sphere.

    Raises:
        RuntimeError: If the maximum number of spheres is exceeded.
    """
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_positions[idx] = [float(c) for c in position]
    sphere_radii[idx] = float(radius)
    sphere_albedos[idx] = [float(c) for c in albedo]
    sphere_speculars[idx] = [float(c) for c in specular]
    num_spheres[None] = idx + 1
    return idx


def set_spheres(
    positions: npt.ArrayLike,
    radii: npt.ArrayLike,
    albedos: npt.ArrayLike,
    speculars: npt.ArrayLike,
) -> int:
    """Replace the whole sphere buffer in one upload.

    Args:
        positions: Array of shape (N, 3).
        radii: Array of shape (N,).
        albedos: Array of shape (N, 3).
        speculars: Array of shape (N, 3).

    Returns:
        The number of spheres now in the scene.

    Raises:
        ValueError: If the array shapes are inconsistent.
        RuntimeError: If N exceeds MAX_SPHERES.
    """
    positions = np.asarray(positions, dtype=np.float32).reshape(-1, 3)
    radii = np.asarray(radii, dtype=np.float32).reshape(-1)
    albedos = np.asarray(albedos, dtype=np.float32).reshape(-1, 3)
    speculars = np.asarray(speculars, dtype=np.float32).reshape(-1, 3)

    count = positions.shape[0]
    if not (radii.shape[0] == albedos.shape[0] == speculars.shape[0] == count):
        raise ValueError(
            f"Sphere arrays disagree in length: positions={count}, radii={radii.shape[0]}, "
            f"albedos={albedos.shape[0]}, speculars={speculars.shape[0]}"
        )
    if count > MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")

    def _padded(data: npt.NDArray[np.float32]) -> npt.NDArray[np.float32]:
        full = np.zeros((MAX_SPHERES,) + data.shape[1:], dtype=np.float32)
        full[:count] = data
        return full

    sphere_positions.from_numpy(_padded(positions))
    sphere_radii.from_numpy(_padded(radii))
    sphere_albedos.from_numpy(_padded(albedos))
    sphere_speculars.from_numpy(_padded(speculars))
    num_spheres[None] = count
    return count


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


def get_sphere(index: int) -> dict[str, tuple[float, ...] | float]:
    """Read a stored sphere back from the Taichi fields.

    Raises:
        IndexError: If index is outside the current sphere count.
    """
    if not 0 <= index < get_sphere_count():
        raise IndexError(f"Sphere index {index} out of range (count={get_sphere_count()})")
    return {
        "position": tuple(float(c) for c in sphere_positions[index].to_numpy()),
        "radius": float(sphere_radii[index]),
        "albedo": tuple(float(c) for c in sphere_albedos[index].to_numpy()),
        "specular": tuple(float(c) for c in sphere_speculars[index].to_numpy()),
    }


@ti.func
def _load_sphere(i: ti.i32) -> Sphere:
    return Sphere(
        position=sphere_positions[i],
        radius=sphere_radii[i],
        albedo=sphere_albedos[i],
        specular=sphere_speculars[i],
    )


@ti.func
def trace(ray: Ray) -> HitRecord:
    """Find the nearest surface along a ray.

    Tests the ground plane, then every sphere in the buffer. Each test only
    replaces the record with a strictly closer hit, so the order of spheres
    does not change the result.

    Args:
        ray: The ray to trace.

    Returns:
        The nearest hit, or a record with distance +inf if nothing was hit.
    """
    hit = make_empty_hit()
    hit = intersect_ground_plane(ray, hit)

    n = num_spheres[None]
    for i in range(n):
        hit = intersect_sphere(ray, hit, _load_sphere(i))

    return hit
