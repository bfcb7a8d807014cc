"""Demo scene: reflective and transparent spheres over a tiled floor.

The scene exercises every shading feature of the renderer:

- a mirror sphere (reflection)
- a glass sphere (refraction and tinted shadows)
- an emerald sphere (both), a bronze sphere and two plastic spheres
- a periodic plane floor with thin red bands
- a warm directional light and a dimmer point light, whose glows show when
  reflected rays look at them

The z axis is up, matching the background's sky and ground.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from whitted.scene.demo import create_demo_scene
    >>> scene, view_box = create_demo_scene()
"""

from dataclasses import dataclass

from whitted.camera.viewbox import ViewBox
from whitted.geometry.plane import PeriodicPlane
from whitted.geometry.sphere import SphereObject
from whitted.lights.light import DirectionalLight, PointLight
from whitted.materials.material import Material
from whitted.scene.manager import Scene


@dataclass
class DemoCamera:
    """Camera placement for the demo scene.

    Attributes:
        lookfrom: Eye position.
        lookat: Point looked at.
        vup: Up direction.
        vfov: Vertical field of view in degrees.
    """

    lookfrom: tuple[float, float, float] = (0.0, -14.0, 5.0)
    lookat: tuple[float, float, float] = (0.0, 0.0, 1.5)
    vup: tuple[float, float, float] = (0.0, 0.0, 1.0)
    vfov: float = 40.0


def create_demo_scene(
    aspect_ratio: float = 4.0 / 3.0,
    camera: DemoCamera | None = None,
) -> tuple[Scene, ViewBox]:
    """Create the demo scene and a view box looking at it.

    Args:
        aspect_ratio: Width over height of the intended image.
        camera: Camera placement. Defaults to DemoCamera().

    Returns:
        Tuple of (scene, view_box).
    """
    if camera is None:
        camera = DemoCamera()

    scene = Scene()

    # Lights
    scene.add_light(DirectionalLight(direction=(1.0, -1.0, 2.0), color=(1.0, 1.0, 0.9)))
    scene.add_light(PointLight(position=(-6.0, -4.0, 8.0), color=(0.4, 0.4, 0.45)))

    # Spheres
    scene.add_object(SphereObject(center=(0.0, 0.0, 2.0), radius=2.0, material=Material.mirror()))
    scene.add_object(SphereObject(center=(-4.0, -2.0, 1.5), radius=1.5, material=Material.glass()))
    scene.add_object(SphereObject(center=(4.0, -1.0, 1.5), radius=1.5, material=Material.emerald()))
    scene.add_object(SphereObject(center=(2.5, -5.0, 0.8), radius=0.8, material=Material.bronze()))
    scene.add_object(
        SphereObject(center=(-1.5, -5.5, 0.6), radius=0.6, material=Material.red_plastic())
    )
    scene.add_object(
        SphereObject(center=(0.5, 4.0, 1.0), radius=1.0, material=Material.white_plastic())
    )

    # Floor
    scene.add_object(
        PeriodicPlane(
            point=(0.0, 0.0, 0.0),
            u=(2.0, 0.0, 0.0),
            v=(0.0, 2.0, 0.0),
            main_material=Material.white_plastic(),
            band_material=Material.red_plastic(),
            band_width=0.05,
        )
    )

    view_box = ViewBox.look_at(
        lookfrom=camera.lookfrom,
        lookat=camera.lookat,
        vup=camera.vup,
        vfov=camera.vfov,
        aspect_ratio=aspect_ratio,
    )
    return scene, view_box
