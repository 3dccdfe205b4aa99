"""
Image injection: fetch binary image content from a URL, register it in the
package (media part, relationship, content type) and emit an inline drawing.
"""

import io
import logging
import posixpath
import urllib.parse

import httpx
from PIL import Image, UnidentifiedImageError

from .exceptions import FetchError, ImageError
from .ooxml import (
    NS_W, NS_WP, NS_A, NS_PIC, NS_R, NS_A14,
    URI_PICTURE, URI_USE_LOCAL_DPI, RELTYPE_IMAGE,
    make_elem, add_elem,
)

logger = logging.getLogger('json2docx')


def fetch_image(url, config):
    """Download ``url`` and return its bytes.

    Redirects are followed. The body is streamed so an oversized image is
    rejected once it passes ``MAX_IMAGE_BYTES``.

    Raises:
        FetchError: On a non-2xx status, a network failure, an empty body or
            a body over the size limit
    """
    chunks = []
    size = 0
    try:
        with httpx.Client(
            timeout=config.IMAGE_FETCH_TIMEOUT,
            follow_redirects=True,
            headers={'User-Agent': config.USER_AGENT},
        ) as client:
            with client.stream('GET', url) as response:
                response.raise_for_status()
                for chunk in response.iter_bytes():
                    size += len(chunk)
                    if size > config.MAX_IMAGE_BYTES:
                        raise FetchError(f"Image too large (max {config.MAX_IMAGE_BYTES} bytes): {url}")
                    chunks.append(chunk)
    except httpx.HTTPStatusError as e:
        raise FetchError(f"Failed to fetch image: {e.response.status_code} {url}") from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise FetchError(f"Failed to fetch image {url}: {e}") from e

    if not size:
        raise FetchError(f"Image is empty: {url}")
    logger.debug("Fetched %s (%d bytes)", url, size)
    return b''.join(chunks)


def extension_from_url(url, default='png'):
    """Extension of the URL path's last segment, query string dropped."""
    path = urllib.parse.urlsplit(url).path
    segment = posixpath.basename(path)
    if '.' not in segment:
        return default
    ext = segment.rsplit('.', 1)[1].lower()
    return ext or default


def sniff_extension(data, config):
    """Detect the real image format with Pillow; None when unrecognized."""
    try:
        with Image.open(io.BytesIO(data)) as im:
            return config.PIL_FORMAT_EXTENSIONS.get(im.format)
    except (UnidentifiedImageError, OSError):
        return None


def embed_image(data, extension, width, height, context):
    """Register image bytes in the package and return the drawing paragraph.

    Args:
        data: Raw image bytes
        extension: File extension (without dot)
        width: Width in logical pixels
        height: Height in logical pixels
        context: GenerationContext of the running call

    Raises:
        ImageError: If no content type can be determined for the image
    """
    config = context.config
    package = context.package

    if extension not in config.IMAGE_CONTENT_TYPES:
        sniffed = sniff_extension(data, config)
        if sniffed is None:
            raise ImageError(f"Unsupported image format '.{extension}'")
        logger.debug("URL extension '.%s' unknown; Pillow detected '.%s'", extension, sniffed)
        extension = sniffed

    rels = package.relationships_for(context.part_name)
    media_dir = posixpath.dirname(context.part_name)

    # Skip numbers whose media name or relationship id is already taken.
    while True:
        number = context.next_image_number()
        r_id = f'rId{config.IMAGE_REL_ID_BASE + number}'
        filename = f'image{number}.{extension}'
        media_part = posixpath.join(media_dir, 'media', filename)
        if not package.has_part(media_part) and not rels.has_id(r_id):
            break

    package.write_part(media_part, data)
    rels.add(r_id, RELTYPE_IMAGE, f'media/{filename}')
    package.content_types.ensure_default(extension, config.IMAGE_CONTENT_TYPES[extension])

    logger.info("Image added: %s, ID: %s", filename, r_id)
    return create_picture_paragraph(
        r_id, width, height, config.IMAGE_REL_ID_BASE + number, config
    )


def fetch_and_embed(url, width, height, context):
    """Fetch ``url`` and embed it; see ``fetch_image`` and ``embed_image``."""
    config = context.config
    if context.images_embedded >= config.MAX_IMAGE_COUNT:
        raise ImageError(f"Image count limit reached ({config.MAX_IMAGE_COUNT})")
    data = fetch_image(url, config)
    extension = extension_from_url(url, config.DEFAULT_IMAGE_EXTENSION)
    return embed_image(data, extension, width, height, context)


# --- Drawing Element Creators ---

def create_inline_drawing_paragraph(cx, cy, doc_pr_id, name, descr):
    """Paragraph with ``w:r/w:drawing/wp:inline`` sized ``cx`` x ``cy`` EMU.

    Returns:
        tuple: (paragraph, graphicData element to fill)
    """
    paragraph = make_elem(NS_W, 'p')
    run = add_elem(paragraph, NS_W, 'r')
    drawing = add_elem(run, NS_W, 'drawing')

    inline = add_elem(drawing, NS_WP, 'inline', {'distT': '0', 'distB': '0', 'distL': '0', 'distR': '0'})
    add_elem(inline, NS_WP, 'extent', {'cx': str(cx), 'cy': str(cy)})
    add_elem(inline, NS_WP, 'effectExtent', {'l': '0', 't': '0', 'r': '0', 'b': '0'})
    add_elem(inline, NS_WP, 'docPr', {'id': str(doc_pr_id), 'name': name, 'descr': descr})
    frame_pr = add_elem(inline, NS_WP, 'cNvGraphicFramePr')
    add_elem(frame_pr, NS_A, 'graphicFrameLocks', {'noChangeAspect': '1'})

    graphic = add_elem(inline, NS_A, 'graphic')
    return paragraph, graphic


def create_picture_paragraph(r_id, width, height, doc_pr_id, config):
    """Inline picture referencing the image relationship ``r_id``."""
    cx = int(width) * config.EMU_PER_PX
    cy = int(height) * config.EMU_PER_PX

    paragraph, graphic = create_inline_drawing_paragraph(
        cx, cy, doc_pr_id, f'Picture {doc_pr_id}', 'Image'
    )
    graphic_data = add_elem(graphic, NS_A, 'graphicData', {'uri': URI_PICTURE})
    pic = add_elem(graphic_data, NS_PIC, 'pic')

    nv_pic_pr = add_elem(pic, NS_PIC, 'nvPicPr')
    add_elem(nv_pic_pr, NS_PIC, 'cNvPr', {'id': str(doc_pr_id), 'name': 'Image', 'descr': 'Image'})
    c_nv_pic_pr = add_elem(nv_pic_pr, NS_PIC, 'cNvPicPr')
    add_elem(c_nv_pic_pr, NS_A, 'picLocks', {'noChangeAspect': '1', 'noChangeArrowheads': '1'})

    blip_fill = add_elem(pic, NS_PIC, 'blipFill')
    blip = add_elem(blip_fill, NS_A, 'blip', {f'{{{NS_R}}}embed': r_id})
    ext_lst = add_elem(blip, NS_A, 'extLst')
    ext = add_elem(ext_lst, NS_A, 'ext', {'uri': URI_USE_LOCAL_DPI})
    add_elem(ext, NS_A14, 'useLocalDpi', {'val': '0'})
    stretch = add_elem(blip_fill, NS_A, 'stretch')
    add_elem(stretch, NS_A, 'fillRect')

    sp_pr = add_elem(pic, NS_PIC, 'spPr', {'bwMode': 'auto'})
    xfrm = add_elem(sp_pr, NS_A, 'xfrm')
    add_elem(xfrm, NS_A, 'off', {'x': '0', 'y': '0'})
    add_elem(xfrm, NS_A, 'ext', {'cx': str(cx), 'cy': str(cy)})
    prst_geom = add_elem(sp_pr, NS_A, 'prstGeom', {'prst': 'rect'})
    add_elem(prst_geom, NS_A, 'avLst')
    add_elem(sp_pr, NS_A, 'noFill')
    ln = add_elem(sp_pr, NS_A, 'ln')
    add_elem(ln, NS_A, 'noFill')

    return paragraph
