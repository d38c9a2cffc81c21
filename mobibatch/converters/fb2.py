"""FB2 converter: XSLT to an OPF package that kindlegen understands."""

import base64
import binascii
from functools import lru_cache
from importlib.resources import files
from pathlib import Path

from lxml import etree

from mobibatch.config.constants import (
    FB2_HTML_NAME,
    FB2_NCX_NAME,
    FB2_OPF_NAME,
    LOCAL_OUTPUT_NAME,
)
from mobibatch.converters.base import BookConverter, BookFormat
from mobibatch.core.workspace import Workspace
from mobibatch.exceptions import TransformError
from mobibatch.utils.fs import safe_filename
from mobibatch.utils.logging import get_logger

log = get_logger(__name__)

XLINK_HREF = "{http://www.w3.org/1999/xlink}href"

# Stylesheet -> output file name inside the workspace
TRANSFORMS = (
    ("fb2_2_xhtml.xsl", FB2_HTML_NAME),
    ("fb2_2_opf.xsl", FB2_OPF_NAME),
    ("fb2_2_ncx.xsl", FB2_NCX_NAME),
)


@lru_cache
def _stylesheet_source(name: str) -> bytes:
    return (files("mobibatch.converters") / "xsl" / name).read_bytes()


def load_stylesheet(name: str) -> etree.XSLT:
    """Compile a bundled stylesheet.

    The source bytes are cached; the compiled XSLT object is built per call
    so concurrent jobs never share one.
    """
    return etree.XSLT(etree.fromstring(_stylesheet_source(name)))


def _parser() -> etree.XMLParser:
    # Inline binaries routinely exceed libxml2's default size limits
    return etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)


class Fb2Converter(BookConverter):
    """FictionBook 2 converter.

    kindlegen cannot read FB2, so the staged document is turned into an
    unpacked OPF book in the workspace: every ``<binary>`` attachment is
    decoded to a file named after its id, and three stylesheets render the
    XHTML body, the OPF package and the NCX table of contents.
    """

    name = "fb2"
    book_format = BookFormat.FB2

    def produce_intermediate(self, workspace: Workspace, staged: Path) -> Path:
        try:
            document = etree.parse(str(staged), _parser())
            self.save_attachments(document, workspace)
            for stylesheet, output_name in TRANSFORMS:
                self.transform(document, stylesheet, workspace.path / output_name)
        except TransformError:
            raise
        except (etree.XMLSyntaxError, etree.XSLTError, binascii.Error, ValueError, OSError) as e:
            raise TransformError(self.job.source_path, str(e), cause=e) from e

        return workspace.path / FB2_OPF_NAME

    def save_attachments(self, document: etree._ElementTree, workspace: Workspace) -> int:
        """Decode ``<binary>`` elements into workspace files.

        The document is updated to match what was written: each saved
        binary takes the file name it was saved under as its id, image links
        follow the rename, and binaries that could not be saved are removed.
        The stylesheets then only reference files present in the workspace.

        Returns:
            Number of attachments written
        """
        taken = {
            workspace.local_input(self.source_extension).name,
            LOCAL_OUTPUT_NAME,
            FB2_HTML_NAME,
            FB2_OPF_NAME,
            FB2_NCX_NAME,
        }
        renamed: dict[str, str] = {}
        count = 0
        root = document.getroot()

        for binary in list(root.iterfind("{*}binary")):
            binary_id = binary.get("id", "")
            filename = self._attachment_filename(binary_id, taken)
            if filename is None:
                root.remove(binary)
                continue

            payload = "".join((binary.text or "").split())
            (workspace.path / filename).write_bytes(base64.b64decode(payload))
            taken.add(filename)
            count += 1
            if filename != binary_id:
                binary.set("id", filename)
                renamed[f"#{binary_id}"] = f"#{filename}"

        if renamed:
            for element in root.iter("{*}image"):
                href = element.get(XLINK_HREF)
                if href in renamed:
                    element.set(XLINK_HREF, renamed[href])

        log.debug("Attachments saved", source=str(self.job.source_path), count=count)
        return count

    def _attachment_filename(self, binary_id: str, taken: set[str]) -> str | None:
        if not binary_id:
            log.warning("Attachment without id skipped", source=str(self.job.source_path))
            return None
        try:
            filename = safe_filename(binary_id)
        except ValueError:
            log.warning("Attachment id is not a usable file name", id=binary_id)
            return None
        if filename in taken:
            log.warning("Attachment name already in use, skipped", id=binary_id)
            return None
        return filename

    def transform(self, document: etree._ElementTree, stylesheet: str, target: Path) -> None:
        """Apply a bundled stylesheet to the document and write the result."""
        result = load_stylesheet(stylesheet)(document)
        target.write_bytes(bytes(result))
