"""Whitted-style recursive ray tracer built on Taichi.

This package renders scenes of spheres and periodic planes lit by point and
directional lights, with:
- Phong local illumination and ambient light
- Mirror reflection and Snell refraction, recursively up to a depth budget
- Shadow rays attenuated by transparent occluders
- A procedural sky/ground background with light glows

Subpackages:
    core: Ray utilities, the trace/shade integrator and the renderer
    geometry: Primitives and their intersection functions
    materials: Phong material model and the material registry
    lights: Point and directional lights
    scene: Scene container, closest-hit query, background, demo scene
    camera: View box camera with primary ray generation
    preview: Image export and the interactive preview window
"""

__version__ = "0.1.0"
