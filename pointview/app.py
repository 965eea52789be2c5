"""The point cloud viewer window: shaders, GPU point buffers and the render loop."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import numpy as np

from pointview.camera import Camera, perspective
from pointview.menu import (
    CONTROLS_HELP,
    InputAction,
    Key,
    Menu,
    list_point_cloud_files,
)
from pointview.pointcloud import PointCloud, PointCloudError, load_point_cloud

logger = logging.getLogger(__name__)

SCR_WIDTH = 800
SCR_HEIGHT = 600
WINDOW_TITLE = "Point Cloud Renderer"
DEFAULT_POINT_CLOUD = "resources/test.pts"
POINT_VERTEX_SHADER = "shaders/point_cloud.vs"
POINT_FRAGMENT_SHADER = "shaders/point_cloud.fs"
MARKER_VERTEX_SHADER = "shaders/marker.vs"
MARKER_FRAGMENT_SHADER = "shaders/marker.fs"
CLEAR_COLOR = (0.2, 0.3, 0.3, 1.0)
NEAR_PLANE = 0.1
FAR_PLANE = 100.0
LIGHT_OFFSET = np.array([0.0, 0.0, -1.0])
LIGHT_MARKER_SIZE = 10.0
DIRECTION_MARKER_SIZE = 1.0

_FLOAT_SIZE = 4
_POINT_STRIDE = 9 * _FLOAT_SIZE


class Shader:
    """A linked vertex and fragment shader program read from two files."""

    def __init__(self, vertex_path, fragment_path):
        from pyglet.graphics.shader import Shader as GLShader
        from pyglet.graphics.shader import ShaderProgram

        vertex_source = Path(vertex_path).read_text(encoding="utf-8")
        fragment_source = Path(fragment_path).read_text(encoding="utf-8")
        vertex = GLShader(vertex_source, "vertex")
        fragment = GLShader(fragment_source, "fragment")
        self.program = ShaderProgram(vertex, fragment)

    def use(self) -> None:
        """Make this program the active one."""
        self.program.use()

    def _set(self, name: str, value) -> None:
        # Uniforms the compiler removed as unused are silently ignored.
        if name in self.program.uniforms:
            self.program[name] = value

    def set_bool(self, name, value) -> None:
        self._set(name, int(bool(value)))

    def set_int(self, name, value) -> None:
        self._set(name, int(value))

    def set_float(self, name, value) -> None:
        self._set(name, float(value))

    def set_mat4(self, name, value) -> None:
        # OpenGL expects column-major order.
        matrix = np.asarray(value, dtype=np.float64).reshape(4, 4)
        self._set(name, tuple(float(v) for v in matrix.T.flatten()))

    def set_vec3(self, name, value) -> None:
        vector = np.asarray(value, dtype=np.float64).reshape(3)
        self._set(name, tuple(float(v) for v in vector))


class PointRenderer:
    """Keeps a loaded point cloud in GPU buffers and draws it as points."""

    def __init__(self, filename, parallel=False):
        self.filename = str(filename)
        self.parallel = bool(parallel)
        self.cloud = PointCloud(np.empty((0, 3)), np.empty((0, 3)), np.empty((0, 3)))
        self._vao = None
        self._vbo = None
        try:
            self.load(self.filename)
        except PointCloudError as exc:
            logger.error("Failed to load point cloud from file: %s (%s)", filename, exc)

    def load(self, filename) -> PointCloud:
        """Replace the points with those of ``filename`` and upload them."""
        self.filename = str(filename)
        self.cloud = load_point_cloud(self.filename, self.parallel)
        self._setup_buffers()
        return self.cloud

    def render(self) -> None:
        """Draw every loaded point."""
        from pyglet import gl

        if self._vao is None or not len(self.cloud):
            return
        self._vao.bind()
        gl.glDrawArrays(gl.GL_POINTS, 0, len(self.cloud))
        self._vao.unbind()

    def _setup_buffers(self) -> None:
        from pyglet import gl
        from pyglet.graphics.vertexarray import VertexArray
        from pyglet.graphics.vertexbuffer import BufferObject

        self._release()
        data = self.cloud.interleaved()
        if not len(data):
            return
        self._data = data
        self._vao = VertexArray()
        self._vao.bind()
        self._vbo = BufferObject(data.nbytes, usage=gl.GL_STATIC_DRAW)
        self._vbo.set_data(data.ctypes.data)
        for location in range(3):
            gl.glEnableVertexAttribArray(location)
            gl.glVertexAttribPointer(
                location,
                3,
                gl.GL_FLOAT,
                gl.GL_FALSE,
                _POINT_STRIDE,
                location * 3 * _FLOAT_SIZE,
            )
        self._vao.unbind()

    def _release(self) -> None:
        if self._vbo is not None:
            self._vbo.delete()
            self._vbo = None
        if self._vao is not None:
            self._vao.delete()
            self._vao = None


class MouseTracker:
    """Turns cursor positions into look offsets, with y growing downwards on screen."""

    def __init__(self, x=SCR_WIDTH / 2.0, y=SCR_HEIGHT / 2.0):
        self.last_x = float(x)
        self.last_y = float(y)
        self.first = True

    def reset(self) -> None:
        """Forget the last position so the next move causes no jump."""
        self.first = True

    def offsets(self, x, y) -> tuple[float, float]:
        """Return the (x, y) look offset since the previous position."""
        x = float(x)
        y = float(y)
        if self.first:
            self.last_x = x
            self.last_y = y
            self.first = False
        xoffset = x - self.last_x
        yoffset = self.last_y - y
        self.last_x = x
        self.last_y = y
        return xoffset, yoffset


def shader_light_position(camera: Camera, menu: Menu) -> np.ndarray:
    """Return the light position handed to the point shader."""
    if menu.lighting_follow:
        return np.asarray(camera.position, dtype=np.float64) + LIGHT_OFFSET
    return np.asarray(menu.light_pos, dtype=np.float64)


def marker_positions(camera: Camera, menu: Menu) -> tuple[np.ndarray, np.ndarray]:
    """Return where the light marker and the light direction marker are drawn."""
    light_pos = np.asarray(menu.light_pos, dtype=np.float64)
    light_marker = (
        np.asarray(camera.position, dtype=np.float64) if menu.lighting_follow else light_pos
    )
    direction = np.asarray(menu.light_dir, dtype=np.float64)
    direction_marker = light_pos + direction / np.linalg.norm(direction)
    return light_marker, direction_marker


def resolve_point_cloud_path(argv, default=DEFAULT_POINT_CLOUD) -> str:
    """Return the first argument as the file to show, or ``default`` without one.

    Further arguments are ignored. Raises FileNotFoundError for a missing file.
    """
    args = list(argv or ())
    if not args:
        return str(default)
    path = Path(args[0])
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    return str(path)


def _draw_single_point(position: np.ndarray) -> None:
    from pyglet import gl
    from pyglet.graphics.vertexarray import VertexArray
    from pyglet.graphics.vertexbuffer import BufferObject

    data = np.ascontiguousarray(position, dtype=np.float32).reshape(3)
    vao = VertexArray()
    vao.bind()
    vbo = BufferObject(data.nbytes, usage=gl.GL_STATIC_DRAW)
    vbo.set_data(data.ctypes.data)
    gl.glEnableVertexAttribArray(0)
    gl.glVertexAttribPointer(0, 3, gl.GL_FLOAT, gl.GL_FALSE, 3 * _FLOAT_SIZE, 0)
    gl.glDrawArrays(gl.GL_POINTS, 0, 1)
    vao.unbind()
    vbo.delete()
    vao.delete()


class _Viewer:
    """Wires window events to the camera, menu and renderer."""

    def __init__(self, window, point_shader, marker_shader, renderer):
        import pyglet
        from pyglet.window import key

        self.window = window
        self.point_shader = point_shader
        self.marker_shader = marker_shader
        self.renderer = renderer
        self.camera = Camera(position=(0.0, 0.0, 3.0))
        self.menu = Menu()
        self.mouse = MouseTracker()
        self.cursor = [SCR_WIDTH / 2.0, SCR_HEIGHT / 2.0]
        self.delta_time = 0.0
        self.fps_text = ""
        self.keys = key.KeyStateHandler()
        self.key_map = {
            key.ESCAPE: Key.ESCAPE,
            key.SPACE: Key.SPACE,
            key.W: Key.W,
            key.S: Key.S,
            key.A: Key.A,
            key.D: Key.D,
            key.Q: Key.Q,
            key.E: Key.E,
            key.UP: Key.UP,
            key.DOWN: Key.DOWN,
        }
        self.label = pyglet.text.Label(
            "",
            x=10,
            y=SCR_HEIGHT - 10,
            anchor_y="top",
            multiline=True,
            width=SCR_WIDTH - 20,
            font_size=10,
        )
        self.mouse_locked = False
        self.lock_mouse()
        window.push_handlers(self.keys)
        window.push_handlers(
            on_draw=self.on_draw,
            on_mouse_motion=self.on_mouse_motion,
            on_mouse_drag=self.on_mouse_drag,
            on_mouse_scroll=self.on_mouse_scroll,
            on_mouse_press=self.on_mouse_press,
            on_key_press=self.on_key_press,
        )
        pyglet.clock.schedule(self.update)

    def lock_mouse(self) -> None:
        self.window.set_exclusive_mouse(True)
        self.mouse_locked = True
        self.mouse.reset()

    def unlock_mouse(self) -> None:
        self.window.set_exclusive_mouse(False)
        self.mouse_locked = False

    def update(self, dt) -> None:
        self.delta_time = dt
        pressed = [mapped for code, mapped in self.key_map.items() if self.keys[code]]
        actions = self.menu.process_input(pressed, self.camera, dt)
        if InputAction.UNLOCK_MOUSE in actions:
            self.unlock_mouse()
        self.menu.sync_light(self.camera)
        self.fps_text = self.menu.fps_label(dt)
        if InputAction.CLOSE_WINDOW in actions:
            self.window.close()

    def _look(self, dx, dy) -> None:
        if not self.mouse_locked:
            return
        self.cursor[0] += dx
        self.cursor[1] -= dy
        xoffset, yoffset = self.mouse.offsets(*self.cursor)
        self.camera.process_mouse_movement(xoffset, yoffset)

    def on_mouse_motion(self, x, y, dx, dy) -> None:
        self._look(dx, dy)

    def on_mouse_drag(self, x, y, dx, dy, buttons, modifiers) -> None:
        self._look(dx, dy)

    def on_mouse_scroll(self, x, y, scroll_x, scroll_y) -> None:
        self.camera.process_mouse_scroll(scroll_y)

    def on_mouse_press(self, x, y, button, modifiers) -> None:
        if not self.mouse_locked:
            self.lock_mouse()

    def _files(self) -> list[Path]:
        try:
            return list_point_cloud_files(Path.cwd() / "resources")
        except FileNotFoundError:
            return []

    def on_key_press(self, symbol, modifiers):
        import pyglet
        from pyglet.window import key

        if symbol == key.F:
            self.menu.open_file_dialog = not self.menu.open_file_dialog
        elif symbol == key.R:
            self.menu.reset(self.camera)
        elif symbol == key.L:
            self.menu.lighting_enabled = not self.menu.lighting_enabled
        elif symbol == key.C:
            self.menu.lighting_follow = not self.menu.lighting_follow
        elif symbol == key.V:
            self.menu.use_fps_average = not self.menu.use_fps_average
        elif self.menu.open_file_dialog and key._1 <= symbol <= key._9:
            files = self._files()
            index = symbol - key._1
            if index < len(files):
                self.menu.choose_file(files[index], self.renderer.load)
        if symbol == key.ESCAPE:
            return pyglet.event.EVENT_HANDLED
        return None

    def _hud_text(self) -> str:
        lines = ["Controls:"]
        lines += [f"- {line}" for line in CONTROLS_HELP]
        lines += [
            "Click: Lock mouse, F: Load file, R: Reset",
            "L: Toggle lighting, C: Follow camera, V: Average FPS",
            self.fps_text,
            f"Point Size: {self.menu.point_size:.0f}",
            f"Camera Speed: {self.camera.movement_speed:.1f}",
            f"Lighting: {'on' if self.menu.lighting_enabled else 'off'}, "
            f"follow camera: {'on' if self.menu.lighting_follow else 'off'}",
        ]
        if self.menu.open_file_dialog:
            folder = Path.cwd() / "resources"
            files = self._files()
            if folder.is_dir():
                lines.append(f"Files in: {folder}")
                lines += [f"{number}: {path}" for number, path in enumerate(files[:9], 1)]
            else:
                lines.append(f"Resources folder not found: {folder}")
        return "\n".join(lines)

    def on_draw(self) -> None:
        from pyglet import gl

        gl.glClearColor(*CLEAR_COLOR)
        self.window.clear()
        gl.glEnable(gl.GL_DEPTH_TEST)
        gl.glEnable(gl.GL_PROGRAM_POINT_SIZE)

        projection = perspective(
            np.radians(self.camera.zoom), SCR_WIDTH / SCR_HEIGHT, NEAR_PLANE, FAR_PLANE
        )
        view = self.camera.view_matrix()
        model = np.identity(4)

        shader = self.point_shader
        shader.use()
        shader.set_mat4("projection", projection)
        shader.set_mat4("view", view)
        shader.set_mat4("model", model)
        shader.set_float("pointSize", self.menu.point_size)
        shader.set_bool("useLighting", self.menu.lighting_enabled)
        shader.set_vec3("lightPos", shader_light_position(self.camera, self.menu))
        shader.set_vec3("viewPos", self.camera.position)
        shader.set_vec3("lightColor", self.menu.light_color)
        self.renderer.render()

        markers = self.marker_shader
        markers.use()
        markers.set_mat4("view", view)
        markers.set_mat4("projection", projection)
        markers.set_mat4("model", model)
        light_marker, direction_marker = marker_positions(self.camera, self.menu)
        markers.set_vec3("markerColor", self.menu.light_color)
        gl.glPointSize(LIGHT_MARKER_SIZE)
        _draw_single_point(light_marker)
        markers.set_vec3("markerColor", self.menu.light_color)
        gl.glPointSize(DIRECTION_MARKER_SIZE)
        _draw_single_point(direction_marker)
        markers.program.stop()

        gl.glDisable(gl.GL_DEPTH_TEST)
        self.label.text = self._hud_text()
        self.label.draw()


def main(argv=None) -> int:
    """Open the viewer window on a point cloud file and run until it closes."""
    import pyglet
    from pyglet import gl

    args = sys.argv[1:] if argv is None else list(argv)
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    config = gl.Config(
        major_version=3,
        minor_version=3,
        forward_compatible=True,
        double_buffer=True,
        depth_size=24,
    )
    try:
        window = pyglet.window.Window(SCR_WIDTH, SCR_HEIGHT, WINDOW_TITLE, config=config)
    except Exception as exc:  # noqa: BLE001 - any failure here means no usable window
        print(f"Failed to create window: {exc}", file=sys.stderr)
        return 1

    if not Path(POINT_VERTEX_SHADER).exists() or not Path(POINT_FRAGMENT_SHADER).exists():
        print("Shader files not found!", file=sys.stderr)
        window.close()
        return 1

    try:
        point_shader = Shader(POINT_VERTEX_SHADER, POINT_FRAGMENT_SHADER)
        marker_shader = Shader(MARKER_VERTEX_SHADER, MARKER_FRAGMENT_SHADER)
    except (OSError, pyglet.graphics.shader.ShaderException) as exc:
        print(f"Failed to build shaders: {exc}", file=sys.stderr)
        window.close()
        return 1

    if args:
        print("Arguments provided: " + " ".join(args))
    try:
        point_cloud_path = resolve_point_cloud_path(args)
    except FileNotFoundError as exc:
        print(exc, file=sys.stderr)
        window.close()
        return 1
    if args:
        print(f"Using file: {point_cloud_path}")

    renderer = PointRenderer(point_cloud_path)
    viewer = _Viewer(window, point_shader, marker_shader, renderer)
    try:
        pyglet.app.run()
    finally:
        pyglet.clock.unschedule(viewer.update)
        renderer._release()
    return 0


if __name__ == "__main__":
    sys.exit(main())