"""
File Processing Service for deckgen
Extracts plain text from imported documents
"""

import asyncio
import logging
import re
import zipfile
from pathlib import Path
from typing import List, Tuple, Union

from docx import Document
from docx.opc.exceptions import PackageNotFoundError

from ..core.exceptions import ValidationError
from ..models.project import SourceFile

logger = logging.getLogger(__name__)


class FileProcessor:
    """Default DocumentIngestor: .txt, .md and .docx"""

    def __init__(self):
        self.supported_formats = {
            '.docx': self._process_docx,
            '.txt': self._process_txt,
            '.md': self._process_markdown,
            '.markdown': self._process_markdown,
        }

    def get_supported_formats(self) -> List[str]:
        return list(self.supported_formats.keys())

    def validate_file(self, filename: str, file_size: int, max_size_mb: int = 100) -> Tuple[bool, str]:
        """Validate uploaded file"""
        file_ext = Path(filename).suffix.lower()
        if file_ext not in self.supported_formats:
            return False, f"Unsupported file format: {file_ext}"
        if file_size > max_size_mb * 1024 * 1024:
            return False, f"File too large: {file_size / (1024 * 1024):.1f}MB (max {max_size_mb}MB)"
        return True, "File is valid"

    def describe(self, path: Union[str, Path]) -> SourceFile:
        """Build the SourceFile reference recorded on the project"""
        return SourceFile.from_path(path)

    async def extract_text(self, path: Union[str, Path]) -> str:
        path = Path(path)
        file_ext = path.suffix.lower()
        if file_ext not in self.supported_formats:
            raise ValidationError(f"Unsupported file format: {file_ext}")

        processor = self.supported_formats[file_ext]
        try:
            content = await processor(path)
        except (OSError, UnicodeDecodeError, ValueError, PackageNotFoundError, zipfile.BadZipFile) as e:
            logger.error(f"Error processing file {path.name}: {e}")
            raise ValidationError(f"Could not read {path.name}: {e}") from e

        logger.info(f"Extracted {len(content)} characters from {path.name}")
        return content

    async def _process_docx(self, file_path: Path) -> str:
        def _process_docx_sync(file_path: Path) -> str:
            doc = Document(str(file_path))
            content_parts = []

            for paragraph in doc.paragraphs:
                text = paragraph.text.strip()
                if text:
                    content_parts.append(text)

            for table in doc.tables:
                for row in table.rows:
                    row_text = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                    if row_text:
                        content_parts.append(" | ".join(row_text))

            return "\n\n".join(content_parts)

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _process_docx_sync, file_path)

    async def _process_txt(self, file_path: Path) -> str:
        def _process_txt_sync(file_path: Path) -> str:
            raw = file_path.read_bytes()
            try:
                return raw.decode('utf-8').strip()
            except UnicodeDecodeError:
                logger.warning(f"{file_path.name} is not UTF-8, decoding as latin-1")
                return raw.decode('latin-1').strip()

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _process_txt_sync, file_path)

    async def _process_markdown(self, file_path: Path) -> str:
        def _process_markdown_sync(file_path: Path) -> str:
            with open(file_path, 'r', encoding='utf-8') as file:
                content = file.read()

            # Strip markdown syntax
            content = re.sub(r'#{1,6}\s+', '', content)
            content = re.sub(r'\*\*(.*?)\*\*', r'\1', content)
            content = re.sub(r'\*(.*?)\*', r'\1', content)
            content = re.sub(r'`(.*?)`', r'\1', content)
            content = re.sub(r'\[(.*?)\]\(.*?\)', r'\1', content)

            return content.strip()

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _process_markdown_sync, file_path)
