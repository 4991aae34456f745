from .gateway import (
    ChromaIndexGateway,
    IndexUnavailable,
    SemanticDocument,
    SemanticIndexGateway,
)
from .sync import remove_product, sync_order, sync_product
