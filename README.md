# pointview

An interactive viewer for point clouds. It opens an OpenGL 3.3 window,
loads a point cloud from a text `.pts` file or a binary `.ply` file, and
lets you fly through it with a free camera. Points are lit by a single
point light that can follow the camera.

## Installing

```
pip install .
```

For running the tests:

```
pip install .[test]
pytest
```

## Running

```
pointview [FILE]
```

With no argument the viewer loads `resources/test.pts` from the current
directory. If a file is given it must exist, or the viewer exits with an
error. Extra arguments are printed and ignored.

The shaders are not part of the package. They are read from
`shaders/point_cloud.vs`, `shaders/point_cloud.fs`, `shaders/marker.vs` and
`shaders/marker.fs` under the current directory, and the viewer exits with
an error if they are missing or fail to build. The point shader is given the
uniforms `projection`, `view`, `model`, `pointSize`, `useLighting`,
`lightPos`, `viewPos` and `lightColor`; the marker shader gets `projection`,
`view`, `model` and `markerColor`. Vertex attributes are position (location
0), colour (location 1) and normal (location 2).

## Controls

- W, A, S, D: move the camera
- Mouse: look around while the mouse is locked (it is locked at start)
- Scroll wheel: zoom (field of view between 1 and 45 degrees)
- Q / E: increase / decrease point size (1 to 100)
- Up / Down: increase / decrease camera speed (1 to 25)
- Space: unlock the mouse; click in the window to lock it again
- F: show or hide the file list of `.pts` and `.ply` files in `resources/`
- 1 to 9: load the file with that number while the file list is shown
- R: reset point size to 5, camera speed to 2.5 and turn FPS averaging on
- L: turn lighting on or off
- C: let the light follow the camera, or not
- V: switch between averaged FPS (last 60 frames) and instant FPS
- Esc: quit

A text overlay in the top-left corner shows the controls, the FPS, the
current point size and camera speed, the lighting switches and, when open,
the numbered file list.

Besides the point cloud, two markers are drawn in the light colour: one at
the light position (or at the camera when the light follows it) and one a
unit step from the light position along the light direction.

## File formats

**PTS** is plain text. Lines starting with `//` before the point count are
skipped. The first other line must begin with the number of points; after it
come nine numbers per point: position `x y z`, colour `r g b` in the range 0
to 1, and normal `nx ny nz`. Values beyond the declared count are ignored.

**PLY** must be binary little-endian, with a header holding an
`element vertex N` line and ending with `end_header`. Each vertex is 28
bytes: six 32-bit floats (`x y z nx ny nz`) followed by four unsigned bytes
(`r g b` and a class byte). Colours are scaled from 0–255 to 0–1.

The file extension (`.pts` or `.ply`, in any case) chooses the reader.

## Using it as a library

```python
from pointview.pointcloud import load_point_cloud
from pointview.camera import Camera, CameraMovement

cloud = load_point_cloud("resources/test.pts")
print(len(cloud))
rows = cloud.interleaved()  # (N, 9) float32: position, colour, normal

camera = Camera()
camera.process_keyboard(CameraMovement.FORWARD, 0.016)
view = camera.view_matrix()
```

- `pointview.pointcloud`: `PointCloud`, `load_pts`, `load_pts_bulk`,
  `load_ply` and `load_point_cloud(path, parallel=False)`. With
  `parallel=True`, `.pts` files are read with `load_pts_bulk`, which reads
  every value after the count at once and requires exactly nine per point.
  Loading errors raise `PointCloudError`.
- `pointview.camera`: `Camera`, `CameraMovement`, `look_at` and
  `perspective` (vertical field of view in radians).
- `pointview.menu`: `Menu` (viewer settings and key handling),
  `FpsCounter`, `Key`, `InputAction` and `list_point_cloud_files`.
- `pointview.app`: `Shader` and `PointRenderer` (both need a current OpenGL
  context), `MouseTracker`, `marker_positions`, `shader_light_position`,
  `resolve_point_cloud_path` and `main`.

## What it does not do

- Light position, light colour and light direction cannot be edited from the
  window; change them on a `Menu` object in code.
- The file list shows at most nine files, and only those directly inside
  `resources/` of the current directory.
- No shaders are shipped; you have to provide them as described above.
- The projection keeps an 800×600 aspect ratio even when the window is resized.