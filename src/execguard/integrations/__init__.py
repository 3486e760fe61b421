"""Framework integrations for execguard.

Import the submodule you need; each requires its framework's extra:

- ``execguard.integrations.langchain`` (``pip install execguard[langchain]``)
- ``execguard.integrations.pydantic_ai`` (``pip install execguard[pydantic-ai]``)
"""
