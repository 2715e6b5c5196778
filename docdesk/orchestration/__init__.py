"""
Orchestration Package

Session-scoped control logic that sequences toolkit and model calls:
- Upload intake (file store)
- Batch operations over uploaded files
- PDF creation from free text
- Document-grounded chat
"""

from .batch import BatchItemResult, BatchOrchestrator, BatchReport
from .chat import ConversationMessage, DocumentChat, DocumentContext, build_prompt
from .creator import PdfCreator
from .operations import OPERATION_HANDLERS, BatchOperation, OperationSpec
from .session import SessionRegistry, WorkspaceSession
from .uploads import FileStore, UploadedFile

__all__ = [
    "BatchItemResult",
    "BatchOperation",
    "BatchOrchestrator",
    "BatchReport",
    "ConversationMessage",
    "DocumentChat",
    "DocumentContext",
    "FileStore",
    "OPERATION_HANDLERS",
    "OperationSpec",
    "PdfCreator",
    "SessionRegistry",
    "UploadedFile",
    "WorkspaceSession",
    "build_prompt",
]
