"""Document store backend selector for My Assistant."""

from .attachments import AttachmentStore, attachment_filename
from .file_store import JsonDocumentStore


def create_document_store(config):
    """Return the Firestore store when ``USE_FIRESTORE`` is set, else the JSON file store."""
    if config.use_firestore:
        from .firestore_store import FirestoreDocumentStore
        return FirestoreDocumentStore(collection=config.firestore_collection)
    return JsonDocumentStore(config.data_dir)


__all__ = ["AttachmentStore", "JsonDocumentStore", "attachment_filename", "create_document_store"]
