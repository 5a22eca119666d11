"""
Glossary Exceptions
"""


class GlossaryError(Exception):
    """Base exception for glossary operations"""
    pass


class EntryNotFoundError(GlossaryError):
    """Glossary entry does not exist in the project"""
    def __init__(self, project_id: str, entry_id: str):
        self.project_id = project_id
        self.entry_id = entry_id
        super().__init__(f"Entry {entry_id} not found in project {project_id}")


class DuplicateEntryError(GlossaryError):
    """An entry with the same original term already exists"""
    def __init__(self, original_term: str):
        self.original_term = original_term
        super().__init__(f"Entry already exists: {original_term}")


class GlossaryFormatError(GlossaryError):
    """Glossary payload could not be parsed"""
    pass
