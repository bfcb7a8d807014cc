"""Interactive preview window using Taichi GGUI.

Two uses:

    - displaying a ray traced image: update_image() then run() or a loop of
      show_frame()
    - exploring a scene: run_scene() rasterizes the scene with GGUI. The
      scene's objects and lights are initialized once (init) and drawn every
      frame (draw); lights also register GGUI point lights. The camera
      orbits around its target with the keyboard, and pressing R ray traces
      the current view, shows it and saves it to a timestamped PNG.

Controls in run_scene():
    A / D: orbit left / right
    W / S: orbit up / down
    Q / E: move closer / farther
    R: ray trace the current view (any other key returns to the preview)

Example:
    >>> import numpy as np
    >>> from whitted.preview.interactive import InteractivePreview
    >>>
    >>> preview = InteractivePreview(640, 480)
    >>> preview.update_image(np.zeros((480, 640, 3), dtype=np.float32))
    >>> preview.run()

Scene Exploration Example:
    >>> from whitted.scene.demo import create_demo_scene
    >>> scene, view_box = create_demo_scene()
    >>> preview = InteractivePreview(640, 480)
    >>> preview.run_scene(scene, view_box)
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

import numpy as np
import taichi as ti

from whitted.camera.viewbox import ViewBox

if TYPE_CHECKING:
    import numpy.typing as npt

    from whitted.core.renderer import Renderer
    from whitted.scene.manager import Scene

# Orbit step per frame while a key is held, in radians
ORBIT_STEP = 0.03

# Distance factor per frame for Q / E
ZOOM_STEP = 1.02

# Elevation limit keeping the camera off the poles, in radians
MAX_ELEVATION = 1.5

# Radius of the light gizmos
LIGHT_GIZMO_RADIUS = 0.15

# Ambient light of the rasterized preview
PREVIEW_AMBIENT = (0.25, 0.25, 0.25)


@dataclass
class PreviewMesh:
    """Triangle mesh uploaded for the rasterized preview.

    Attributes:
        vertices: Vertex positions, Vector.field of shape (N,).
        normals: Vertex normals, Vector.field of shape (N,).
        indices: Flat triangle index list, field of shape (3 * T,).
    """

    vertices: Any
    normals: Any
    indices: Any


@dataclass
class OrbitCamera:
    """Camera orbiting around a target point, z up.

    Attributes:
        target: Point looked at.
        distance: Distance from the target (> 0).
        azimuth: Angle around the z axis, in radians.
        elevation: Angle above the horizontal plane, in radians.
        vfov: Vertical field of view in degrees.
    """

    target: tuple[float, float, float]
    distance: float
    azimuth: float
    elevation: float
    vfov: float = 40.0

    @classmethod
    def from_view_box(cls, view_box: ViewBox, distance: float = 10.0) -> OrbitCamera:
        """Orbit camera matching the eye point and central direction of a view box.

        The target is placed ``distance`` away along the central direction.
        """
        corners = np.array([view_box.dir_ul, view_box.dir_ur, view_box.dir_ll, view_box.dir_lr])
        units = corners / np.linalg.norm(corners, axis=1, keepdims=True)
        forward = units.mean(axis=0)
        forward /= np.linalg.norm(forward)

        # Angle between the midpoints of the top and bottom edges
        top = corners[0] + corners[1]
        bottom = corners[2] + corners[3]
        cos_vfov = np.dot(top, bottom) / (np.linalg.norm(top) * np.linalg.norm(bottom))
        vfov = math.degrees(math.acos(float(np.clip(cos_vfov, -1.0, 1.0))))

        eye = np.asarray(view_box.origin, dtype=np.float64)
        target = eye + distance * forward
        offset = eye - target
        return cls(
            target=(float(target[0]), float(target[1]), float(target[2])),
            distance=distance,
            azimuth=math.atan2(offset[1], offset[0]),
            elevation=math.asin(float(np.clip(offset[2] / distance, -1.0, 1.0))),
            vfov=min(max(vfov, 1.0), 179.0),
        )

    def eye(self) -> tuple[float, float, float]:
        """Current eye position."""
        c = math.cos(self.elevation)
        return (
            self.target[0] + self.distance * c * math.cos(self.azimuth),
            self.target[1] + self.distance * c * math.sin(self.azimuth),
            self.target[2] + self.distance * math.sin(self.elevation),
        )

    def orbit(self, d_azimuth: float, d_elevation: float) -> None:
        self.azimuth = (self.azimuth + d_azimuth) % (2.0 * math.pi)
        self.elevation = min(max(self.elevation + d_elevation, -MAX_ELEVATION), MAX_ELEVATION)

    def zoom(self, factor: float) -> None:
        self.distance = max(self.distance * factor, 1e-3)

    def view_box(self, aspect_ratio: float) -> ViewBox:
        """View box for ray tracing what the camera currently sees."""
        return ViewBox.look_at(
            lookfrom=self.eye(),
            lookat=self.target,
            vup=(0.0, 0.0, 1.0),
            vfov=self.vfov,
            aspect_ratio=aspect_ratio,
        )


class InteractivePreview:
    """Interactive preview window using Taichi GGUI.

    Attributes:
        width: Window width in pixels.
        height: Window height in pixels.
        display_image: Taichi field storing the display image (RGB float).
    """

    def __init__(
        self,
        width: int,
        height: int,
        *,
        title: str = "Whitted Ray Tracer - Preview",
    ) -> None:
        """Initialize the preview. The window is created lazily.

        Args:
            width: Window width in pixels.
            height: Window height in pixels.
            title: Window title.
        """
        self.width = width
        self.height = height
        self._title = title
        self._is_initialized = False

        self._window: ti.ui.Window | None = None
        self._canvas: ti.ui.Canvas | None = None
        self._scene_3d: Any = None
        self._camera_3d: Any = None

        # Shape is (width, height) for Taichi field, RGB values stored as vec3
        self.display_image: ti.MatrixField = ti.Vector.field(
            3, dtype=ti.f32, shape=(width, height)
        )
        self.orbit_camera: OrbitCamera | None = None
        self.last_export: str | None = None

    def _initialize_window(self) -> None:
        if self._is_initialized:
            return

        self._window = ti.ui.Window(
            name=self._title,
            res=(self.width, self.height),
            vsync=True,
        )
        self._canvas = self._window.get_canvas()
        self._is_initialized = True

    @property
    def window(self) -> ti.ui.Window:
        """Get the Taichi GGUI window, initializing if needed."""
        if self._window is None:
            self._initialize_window()
        assert self._window is not None
        return self._window

    @property
    def canvas(self) -> ti.ui.Canvas:
        """Get the canvas for rendering."""
        if self._canvas is None:
            self._initialize_window()
        assert self._canvas is not None
        return self._canvas

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    # =========================================================================
    # Image Display
    # =========================================================================

    def update_image(self, image: npt.NDArray[np.float32]) -> None:
        """Update the display image from a rendered image.

        Args:
            image: Array of shape (height, width, 3), values in [0, 1], row 0
                at the top.

        Raises:
            ValueError: If image shape doesn't match (height, width, 3).
        """
        expected_shape = (self.height, self.width, 3)
        if image.shape != expected_shape:
            raise ValueError(f"Image shape {image.shape} doesn't match expected {expected_shape}")

        # Taichi canvases have their origin at the bottom-left
        image_transposed = np.ascontiguousarray(
            np.transpose(np.flipud(image), (1, 0, 2)), dtype=np.float32
        )
        self.display_image.from_numpy(image_transposed)

    def is_running(self) -> bool:
        return self.window.running

    def show_frame(self) -> None:
        """Display the current display image and present the frame."""
        self.canvas.set_image(self.display_image)
        self.window.show()

    def run(self) -> None:
        """Show the display image until the window is closed."""
        self._initialize_window()
        while self.is_running():
            self.show_frame()

    def close(self) -> None:
        if self._window is not None:
            self._window.running = False

    @staticmethod
    def is_display_available() -> bool:
        """Check if a display is available for GUI rendering."""
        display = os.environ.get("DISPLAY")
        wayland = os.environ.get("WAYLAND_DISPLAY")

        if os.uname().sysname == "Darwin":
            ssh_connection = os.environ.get("SSH_CONNECTION")
            if ssh_connection and not display:
                return False
            return True

        if display or wayland:
            return True

        if os.name == "nt":
            return True

        return False

    # =========================================================================
    # Rasterized Scene Preview (used by Primitive and Light hooks)
    # =========================================================================

    def create_mesh(
        self,
        vertices: npt.NDArray[np.float32],
        normals: npt.NDArray[np.float32],
        indices: npt.NDArray[np.int32],
    ) -> PreviewMesh:
        """Upload a triangle mesh into Taichi fields for GGUI.

        Raises:
            ValueError: If the arrays have inconsistent shapes.
        """
        if vertices.ndim != 2 or vertices.shape[1] != 3 or normals.shape != vertices.shape:
            raise ValueError(
                f"Expected (N, 3) vertices and normals, got {vertices.shape} and {normals.shape}"
            )
        if indices.ndim != 1 or indices.size % 3 != 0:
            raise ValueError(f"Expected a flat triangle index list, got shape {indices.shape}")

        vertex_field = ti.Vector.field(3, dtype=ti.f32, shape=vertices.shape[0])
        normal_field = ti.Vector.field(3, dtype=ti.f32, shape=normals.shape[0])
        index_field = ti.field(dtype=ti.i32, shape=indices.size)
        vertex_field.from_numpy(np.ascontiguousarray(vertices, dtype=np.float32))
        normal_field.from_numpy(np.ascontiguousarray(normals, dtype=np.float32))
        index_field.from_numpy(np.ascontiguousarray(indices, dtype=np.int32))
        return PreviewMesh(vertices=vertex_field, normals=normal_field, indices=index_field)

    def _ensure_scene_3d(self) -> None:
        if self._scene_3d is None:
            self._scene_3d = self.window.get_scene()
            self._camera_3d = ti.ui.Camera()

    def draw_mesh(self, mesh: PreviewMesh, color: tuple[float, float, float]) -> None:
        self._ensure_scene_3d()
        self._scene_3d.mesh(
            mesh.vertices,
            indices=mesh.indices,
            normals=mesh.normals,
            color=color,
            two_sided=True,
        )

    def add_point_light(
        self, position: tuple[float, float, float], color: tuple[float, float, float]
    ) -> None:
        self._ensure_scene_3d()
        self._scene_3d.point_light(pos=position, color=color)

    def draw_light_gizmo(
        self, position: tuple[float, float, float], color: tuple[float, float, float]
    ) -> None:
        self._ensure_scene_3d()
        center = ti.Vector.field(3, dtype=ti.f32, shape=1)
        center[0] = position
        gizmo_color = tuple(min(max(float(c), 0.0), 1.0) for c in color)
        self._scene_3d.particles(center, radius=LIGHT_GIZMO_RADIUS, color=gizmo_color)

    # =========================================================================
    # Scene Exploration
    # =========================================================================

    def _handle_orbit_keys(self) -> None:
        assert self.orbit_camera is not None
        if self.window.is_pressed("a"):
            self.orbit_camera.orbit(-ORBIT_STEP, 0.0)
        if self.window.is_pressed("d"):
            self.orbit_camera.orbit(ORBIT_STEP, 0.0)
        if self.window.is_pressed("w"):
            self.orbit_camera.orbit(0.0, ORBIT_STEP)
        if self.window.is_pressed("s"):
            self.orbit_camera.orbit(0.0, -ORBIT_STEP)
        if self.window.is_pressed("q"):
            self.orbit_camera.zoom(1.0 / ZOOM_STEP)
        if self.window.is_pressed("e"):
            self.orbit_camera.zoom(ZOOM_STEP)

    def _draw_scene(self, scene: Scene) -> None:
        assert self.orbit_camera is not None
        self._ensure_scene_3d()
        self._camera_3d.position(*self.orbit_camera.eye())
        self._camera_3d.lookat(*self.orbit_camera.target)
        self._camera_3d.up(0.0, 0.0, 1.0)
        self._camera_3d.fov(self.orbit_camera.vfov)
        self._scene_3d.set_camera(self._camera_3d)
        self._scene_3d.ambient_light(PREVIEW_AMBIENT)
        scene.light(self)
        scene.draw(self)
        self.canvas.scene(self._scene_3d)

    def ray_trace_view(self, renderer: Renderer, max_depth: int) -> npt.NDArray[np.float32]:
        """Ray trace what the orbit camera sees and save it as a PNG.

        Returns:
            The rendered (height, width, 3) image.
        """
        from whitted.preview.export import save_image

        assert self.orbit_camera is not None
        renderer.set_view_box(self.orbit_camera.view_box(self.aspect_ratio))
        renderer.set_resolution(self.width, self.height)
        image = renderer.render(max_depth)
        self.update_image(image)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"whitted_{timestamp}.png"
        save_image(image, filename, gamma=1.0)
        self.last_export = filename
        print(f"Exported: {filename}")
        return image

    def run_scene(self, scene: Scene, view_box: ViewBox, max_depth: int = 5) -> None:
        """Explore a scene interactively until the window is closed.

        Args:
            scene: The scene to show.
            view_box: Initial camera, as used for ray tracing.
            max_depth: Recursion depth used when R is pressed.
        """
        from whitted.core.renderer import Renderer

        self._initialize_window()
        self.orbit_camera = OrbitCamera.from_view_box(view_box)
        renderer = Renderer(scene, view_box, width=self.width, height=self.height)
        showing_render = False

        scene.init(self)
        while self.is_running():
            if self.window.get_event(ti.ui.PRESS):
                key = self.window.event.key
                if key == "r":
                    self.ray_trace_view(renderer, max_depth)
                    showing_render = True
                elif key == ti.ui.ESCAPE:
                    self.close()
                else:
                    showing_render = False

            if showing_render:
                self.show_frame()
            else:
                self._handle_orbit_keys()
                self._draw_scene(scene)
                self.window.show()
