"""Novel Translator core: glossary matching and prompt assembly."""
