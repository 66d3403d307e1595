# Gestor backend test suite
#
# Shared ledger helpers live in tests.helpers; fixtures in conftest.py.
#
# Run with: python -m pytest
