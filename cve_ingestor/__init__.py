"""CVE JSON 5.x 관계형 적재기(CVE JSON 5.x relational ingestor)."""

__version__ = "0.1.0"
