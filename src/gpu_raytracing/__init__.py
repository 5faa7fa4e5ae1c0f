"""Taichi implementation of a progressive GPU ray tracer.

This package renders scenes made of spheres resting on an infinite ground
plane, lit by an environment (sky) image, with:
- Stochastic hemisphere sampling with a Phong specular lobe
- A bounded per-pixel bounce loop with throughput (energy) attenuation
- Camera rays built from camera-to-world and inverse-projection matrices
- Progressive accumulation of jittered frames

Subpackages:
    core: Ray model, random sequence, integrator and progressive accumulation
    geometry: Hit record, ground plane and sphere intersection
    materials: Diffuse + Phong shading model
    scene: Sphere buffer, scene authoring and the environment image
    camera: Pinhole camera matrices and camera ray generation
    preview: Tone mapping, export and the interactive window
"""

__version__ = "0.1.0"
