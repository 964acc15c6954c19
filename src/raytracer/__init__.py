"""Taichi-based sphere ray tracer.

This package renders scenes of spheres (and parallelograms) with diffuse,
metal and glass materials through a thin-lens camera, using Taichi kernels
for the per-pixel work:
- Closest-hit ray-scene intersection over a linear primitive table
- Iterative bounded-depth scattering with a sky gradient background
- Reproducible per-pixel random streams keyed on a render seed
- Multi-sample anti-aliasing, defocus blur and motion blur
- Gamma 2 resolve to 8-bit pixels, PPM and PNG output

Subpackages:
    core: Random streams, rays and vector utilities, integrator, progressive rendering
    geometry: Sphere and quad primitives
    materials: Lambertian, metal and dielectric scattering
    scene: Primitive storage, scene manager and preset scenes
    camera: Thin-lens camera
    preview: Image writers and Matplotlib preview
"""

__version__ = "0.1.0"
