import json
import sys

from db import DocumentRepository, LogStore
from models import DOCUMENT_VERSION, LogDocument


def migrate(db_path: str = "replift.db") -> bool:
    """Rewrite the stored log with current keys and schema version.

    Documents saved by the first release (French keys, blank weights stored
    as strings) are normalized on load; this persists the normalized form.
    Returns ``True`` when the stored document changed. A document that
    cannot be read raises ``ValueError`` and is left untouched.
    """
    documents = DocumentRepository(db_path)
    raw = documents.load(LogStore.STORAGE_KEY)
    if raw is None:
        return False
    before = json.loads(raw)
    doc = LogDocument.normalize(before)
    doc.version = DOCUMENT_VERSION
    after = doc.to_json_dict()
    if before == after:
        return False
    documents.save(LogStore.STORAGE_KEY, json.dumps(after, ensure_ascii=False))
    return True


if __name__ == '__main__':
    path = sys.argv[1] if len(sys.argv) > 1 else 'replift.db'
    changed = migrate(path)
    print("Document migrated" if changed else "Document already up to date")
