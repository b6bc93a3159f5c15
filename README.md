# pixl

Pixel-art "books": small multi-frame RGBA images stored as `.pxl` files.
The package has three parts:

- **`pixl-server`** – an HTTP server that lists, creates, loads and draws on
  pixel books in a directory, and streams change events to clients.
- **`pixl-mcp`** – a Model Context Protocol server on stdin/stdout that exposes
  the drawing API as tools, so an assistant can create and edit pixel art.
- **`pixl-viewer`** – a window that shows a pixel book, scaled to fit and
  centred, with transparent pixels over a checkerboard, and reloads it as it
  is drawn on.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## The server

```
pixl-server [--host HOST] [--port PORT] [--path DIRECTORY]
```

By default it listens on `0.0.0.0:3000` and stores books in your home
directory.

| Method | Path                         | Purpose                                  |
|--------|------------------------------|------------------------------------------|
| GET    | `/`                          | Health check                             |
| GET    | `/path`                      | Current storage directory                |
| PUT    | `/path`                      | Change it: `{"path": "/some/dir"}`       |
| GET    | `/books`                     | List the `.pxl` files in the directory   |
| POST   | `/books`                     | Create a book                            |
| GET    | `/books/{filename}`          | The whole book as JSON                   |
| PUT    | `/books/{filename}`          | Apply drawing operations                 |
| GET    | `/books/{filename}/events`   | Server-sent events for that book         |

`PUT /path` answers 400 if the directory does not exist.

Creating a book:

```json
{"filename": "hero.pxl", "width": 32, "height": 32, "frames": 4}
```

File names must end in `.pxl`; width and height run from 1 to 4096, and the
frame count from 1 to 1000. A missing book answers 404.

Drawing is a list of operations, each tagged by `type`:

```json
{"operations": [
  {"type": "draw_pixel", "frame": 0, "x": 3, "y": 4, "color": [255, 0, 0, 255]},
  {"type": "draw_line", "frame": 0, "start": {"x": 0, "y": 0}, "end": {"x": 7, "y": 7},
   "line_type": "straight", "color": [0, 0, 255, 255]},
  {"type": "draw_shape", "frame": 0, "shape": "circle", "position": {"x": 10, "y": 10},
   "size": {"width": 8, "height": 8}, "filled": true, "color": [0, 255, 0, 255]},
  {"type": "draw_polygon", "frame": 0, "points": [{"x": 1, "y": 1}, {"x": 6, "y": 1}, {"x": 3, "y": 6}],
   "filled": false, "color": [255, 255, 0, 255]},
  {"type": "fill_area", "frame": 0, "x": 0, "y": 0, "color": [20, 20, 20, 255]},
  {"type": "set_color", "color": [255, 255, 255, 255]}
]}
```

Shapes are `rectangle`, `circle`, `oval` and `triangle`; line types are
`straight` and `curved` (a curved line is drawn straight). `set_color` leaves
the book unchanged. Lines, circles and polygons skip points that fall outside
the image, but a `draw_pixel` or `fill_area` outside it, or an operation on a
frame the book does not have, rejects the whole request with status 400 and
nothing is saved. A malformed request body is also answered with 400.

The event stream sends a `connected` message, then each drawing operation and
each save, checking twice a second, and a `heartbeat` message when a check
falls on a whole ten seconds.

### The `.pxl` format

All numbers are little-endian.

- 16-byte header: magic `0x504958` (u32), version `1` (u16), width (u16),
  height (u16), frame count (u16), 4 reserved bytes.
- For each frame, 8 bytes: offset of its data (u32) and its size (u32).
- Each frame's pixels, `width * height * 4` bytes of RGBA, row by row.

## The MCP server

```
pixl-mcp [--server-url URL]
```

It speaks newline-delimited JSON-RPC over stdin and stdout (`initialize`,
`ping`, `tools/list`, `tools/call`) and forwards every tool call to a running
`pixl-server`. Without `--server-url` it uses `PIXL_SERVER_URL`, and failing
that `http://localhost:3000`. Set `PIXL_MCP_DEBUG` to log to stderr.

Tools: `health_check`, `get_path`, `set_path`, `list_books`, `create_book`,
`get_book`, `draw_pixel`, `set_color`, `draw_line`, `draw_shape`,
`draw_polygon`, `fill_area`, `batch_operations` and `apply_operations`.

- `draw_polygon` takes its points as a JSON string such as
  `[{"x": 10, "y": 20}, ...]`, with at least three points.
- `batch_operations` takes a JSON string holding a list of operations in the
  form shown above; `apply_operations` takes the same list as an array.
- Every tool answers with text: the server's reply, or what went wrong.

## The viewer

```
pixl-viewer [--server-url URL]
```

It connects to the server (by default `http://localhost:3000`) and opens a
window. Press Ctrl+O to choose a book with the desktop's file dialog (this
needs Tk); only the chosen file's name is used, and the book is fetched from
the server's storage directory. Once a book is open the viewer follows its
event stream, reloading the book whenever it is drawn on.

| Key                 | Action                     |
|---------------------|----------------------------|
| Ctrl+O              | Open a pixel book          |
| Left / A            | Previous frame             |
| Right / D           | Next frame                 |
| C                   | Clear the error message    |
| Escape              | Quit                       |

The window title shows the book, the current frame and any error. Ctrl+O does
nothing while an error is shown; clear it first.

## Using it from Python

```python
from pixl.server.file_service import FileService
from pixl.server.operations import DrawPixel
from pixl.server.drawing import apply_operations

service = FileService("/tmp/art")
book = service.create_book("hero.pxl", 16, 16, 2)
apply_operations(book, [DrawPixel(frame=0, x=3, y=4, color=(255, 0, 0, 255))])
service.save_book(book)
```

`pixl.server.app.create_app(base_path)` builds the aiohttp application, for
running the server inside your own program.

## What it does not do

- The server has no authentication; anyone who can reach it can change the
  storage directory and draw on books.
- Events are kept in memory for as long as the server runs and are lost when
  it stops.
- There is no undo, and no editing in the viewer: it only displays books.
- The viewer does not open a book by itself at start-up; it reports that it
  could not load one and waits for Ctrl+O.