"""OCR fallback for scanned PDFs.

Rasterises a PDF with pdftoppm (poppler) and runs tesseract on every page
image. Both tools must be on PATH.
"""

import asyncio
import math
import os
import re
import shutil
import tempfile

from shared.errors import DependencyError, ResourceError
from shared.helper.HelperConfig import HelperConfig

REQUIRED_TOOLS = {"tesseract": "tesseract", "pdftoppm": "pdftoppm (poppler)"}

_PAGE_NUMBER_RE = re.compile(r"-(\d+)\.png$")


def _page_number(filename: str) -> float:
    """Page number from a pdftoppm output name such as page-07.png; nan if there is none."""
    match = _PAGE_NUMBER_RE.search(filename)
    return float(match.group(1)) if match else math.nan


def _page_sort_key(filename: str) -> tuple[bool, float]:
    # nan never compares, so unnumbered names go last instead of into the comparison
    number = _page_number(filename)
    if math.isnan(number):
        return True, 0.0
    return False, number


class OcrPipeline:
    """Runs the external OCR tools on a PDF and returns the recognised text."""

    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()
        self.lang = helper_config.get_string_val("OCR_LANG", default="eng")
        self.dpi = int(helper_config.get_number_val("OCR_DPI", default=300))

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def _ensure_tools(self) -> None:
        missing = [label for tool, label in REQUIRED_TOOLS.items() if shutil.which(tool) is None]
        if missing:
            raise DependencyError(
                f"OCR requires {' and '.join(missing)}.",
                details={"missing": missing},
            )

    ##########################################
    ############## SUBPROCESS ################
    ##########################################

    async def _run_tool(self, tool: str, *args: str) -> None:
        """Run one external tool to completion.

        Raises:
            DependencyError: If the tool cannot be started or exits with a non-zero code.
        """
        self.logging.debug("Running %s %s", tool, " ".join(args))
        try:
            process = await asyncio.create_subprocess_exec(
                tool,
                *args,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise DependencyError(f"Failed to start {tool}: {e}") from e

        _, stderr = await process.communicate()
        if process.returncode != 0:
            self.logging.error(
                "%s exited with code %d: %s",
                tool,
                process.returncode,
                stderr.decode("utf-8", errors="replace")[-500:].strip(),
            )
            raise DependencyError(f"{tool} exited with code {process.returncode}")

    ##########################################
    ################# CORE ###################
    ##########################################

    async def do_ocr(self, pdf_path: str) -> str:
        """Recognise the text of every page of a PDF.

        Args:
            pdf_path (str): Path of the PDF file.

        Returns:
            str: The page texts in page order, joined by newlines.

        Raises:
            DependencyError: If a tool is missing, cannot be started or fails.
            ResourceError: If tesseract output cannot be read.
        """
        self._ensure_tools()

        with tempfile.TemporaryDirectory(prefix="rag-ocr-") as tmp_dir:
            prefix = os.path.join(tmp_dir, "page")
            await self._run_tool("pdftoppm", "-r", str(self.dpi), "-png", pdf_path, prefix)

            images = [name for name in os.listdir(tmp_dir) if name.startswith("page-") and name.endswith(".png")]
            images.sort(key=_page_sort_key)
            self.logging.info("OCR on %d page image(s) of '%s'", len(images), pdf_path)

            texts: list[str] = []
            for index, image in enumerate(images):
                out_base = os.path.join(tmp_dir, f"ocr_{index}")
                await self._run_tool(
                    "tesseract",
                    os.path.join(tmp_dir, image),
                    out_base,
                    "-l",
                    self.lang,
                    "--dpi",
                    str(self.dpi),
                )
                try:
                    with open(f"{out_base}.txt", "r", encoding="utf-8") as f:
                        texts.append(f.read())
                except OSError as e:
                    raise ResourceError(f"Could not read OCR output for page image '{image}': {e}") from e

        return "\n".join(texts)
