"""HTTP API for the Novel Translator glossary and prompt services."""
