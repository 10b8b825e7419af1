from .models import DocumentMetadata, DocumentSections, ParsedDocument
from .parse import parse_document

__all__ = ["DocumentMetadata", "DocumentSections", "ParsedDocument", "parse_document"]
