"""Scene module: scene container, closest-hit query, background, demo.

Components:
    manager: Scene owning primitives and lights, upload and JSON files
    intersection: Primitive table and the closest-hit query
    background: Sky/ground background shader with light glows
    demo: Ready-made demo scene

Only one scene is resident in the kernel-side tables at a time;
Scene.upload() replaces whatever was there.
"""

from .background import Background, background_color, setup_background
from .intersection import (
    MAX_PRIMITIVES,
    ClosestHit,
    SceneHit,
    add_primitive,
    clear_primitives,
    get_primitive_count,
    intersect_record,
    primitive_material,
    primitive_normal,
    query_closest_hit,
    ray_intersection,
)
from .manager import Scene, clear_resident_scene, load_scene, resident_scene, save_scene

# demo is NOT imported here: it depends on the camera module.
# Import it directly when needed:
#   from whitted.scene.demo import create_demo_scene

__all__ = [
    "Scene",
    "load_scene",
    "save_scene",
    "resident_scene",
    "clear_resident_scene",
    "SceneHit",
    "ClosestHit",
    "ray_intersection",
    "primitive_normal",
    "primitive_material",
    "intersect_record",
    "query_closest_hit",
    "add_primitive",
    "clear_primitives",
    "get_primitive_count",
    "MAX_PRIMITIVES",
    "Background",
    "setup_background",
    "background_color",
]
