from typing import Literal


existing_providers = Literal[
    "aws",
    "gcp",
    "azure",
    "memory",
]
