"""Export Elasticsearch documents into a Qdrant collection as vector points."""

__version__ = "0.1.0"
