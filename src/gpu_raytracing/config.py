"""Taichi runtime configuration.

Every module that declares Taichi fields needs an initialized runtime before
it is imported, so applications call init_taichi() first and import the
rendering modules afterwards.

Example:
    >>> from gpu_raytracing.config import RuntimeConfig, init_taichi
    >>> backend = init_taichi(RuntimeConfig(arch="cpu", random_seed=7))
    >>> from gpu_raytracing.core.progressive import ProgressiveRenderer
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

import taichi as ti

logger = logging.getLogger(__name__)

_ARCHES = {
    "gpu": ti.gpu,
    "cpu": ti.cpu,
    "cuda": ti.cuda,
    "vulkan": ti.vulkan,
    "metal": ti.metal,
}

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass
class RuntimeConfig:
    """Settings passed to ti.init().

    Attributes:
        arch: Backend name ("gpu", "cpu", "cuda", "vulkan" or "metal").
        fallback_to_cpu: Retry on the CPU backend if the requested one fails.
        random_seed: Seed for Taichi's built-in random generator.
        fast_math: Taichi fast-math mode. Kept off by default because the
            hit record uses +inf as its "no hit" sentinel, which fast-math
            is allowed to fold away.
        debug: Enable Taichi debug mode (bounds checking).
    """

    arch: str = "gpu"
    fallback_to_cpu: bool = True
    random_seed: int = 0
    fast_math: bool = False
    debug: bool = False

    def __post_init__(self) -> None:
        if self.arch not in _ARCHES:
            raise ValueError(
                f"Unknown Taichi arch '{self.arch}'. Expected one of: {', '.join(_ARCHES)}"
            )

    @classmethod
    def from_env(cls, prefix: str = "RAYTRACER_") -> RuntimeConfig:
        """Build a configuration from environment variables.

        Reads {prefix}ARCH, {prefix}RANDOM_SEED, {prefix}FAST_MATH and
        {prefix}DEBUG. Unset variables keep their defaults.

        Raises:
            ValueError: If a variable holds an invalid value.
        """
        config = cls()
        arch = os.environ.get(f"{prefix}ARCH")
        if arch is not None:
            config = cls(arch=arch.strip().lower())

        seed = os.environ.get(f"{prefix}RANDOM_SEED")
        if seed is not None:
            try:
                config.random_seed = int(seed)
            except ValueError as e:
                raise ValueError(f"{prefix}RANDOM_SEED must be an integer, got '{seed}'") from e

        config.fast_math = _parse_bool(prefix + "FAST_MATH", config.fast_math)
        config.debug = _parse_bool(prefix + "DEBUG", config.debug)
        return config


def _parse_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    value = value.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean flag, got '{value}'")


def init_taichi(config: RuntimeConfig | None = None) -> str:
    """Initialize the Taichi runtime.

    Args:
        config: Runtime settings. Defaults to RuntimeConfig().

    Returns:
        The name of the backend that was initialized.

    Raises:
        RuntimeError: If the requested backend is unavailable and
            fallback_to_cpu is disabled.
    """
    if config is None:
        config = RuntimeConfig()

    kwargs = {
        "random_seed": config.random_seed,
        "fast_math": config.fast_math,
        "debug": config.debug,
    }

    try:
        ti.init(arch=_ARCHES[config.arch], **kwargs)
        backend = config.arch
    except Exception as e:
        if not config.fallback_to_cpu or config.arch == "cpu":
            raise RuntimeError(f"Failed to initialize Taichi backend '{config.arch}'") from e
        logger.warning("Taichi backend '%s' unavailable (%s), falling back to CPU", config.arch, e)
        ti.init(arch=ti.cpu, **kwargs)
        backend = "cpu"

    logger.info("Taichi initialized on %s backend", backend)
    return backend
