from sealedgen.ingest.adapter_contract import (
    ClassScan,
    DeclarationHost,
    ModuleScan,
    ParseFailureWitness,
)
from sealedgen.ingest.python_adapter import PythonDeclarationHost

__all__ = [
    "ClassScan",
    "DeclarationHost",
    "ModuleScan",
    "ParseFailureWitness",
    "PythonDeclarationHost",
]
