"""Prometheus metrics for ingestion, retrieval and chat"""
from prometheus_client import Counter, Histogram

# Ingestion metrics
documents_ingested_total = Counter(
    'documents_ingested_total',
    'Total number of documents that reached the processed state',
    ['mime_type']
)

chunks_created_total = Counter(
    'chunks_created_total',
    'Total number of chunks written'
)

ingestion_duration = Histogram(
    'ingestion_duration_seconds',
    'Time spent extracting, chunking, embedding and storing a document',
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0]
)

duplicate_uploads_total = Counter(
    'duplicate_uploads_total',
    'Uploads that matched an existing document',
    ['match_type', 'action']  # action: rejected, replace_offered, replaced
)

# Embedding metrics
embedding_generation_total = Counter(
    'embedding_generation_total',
    'Total number of embedding attempts',
    ['status']  # success, invalid, failed, skipped
)

embedding_generation_duration = Histogram(
    'embedding_generation_duration_seconds',
    'Time spent generating one embedding',
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Retrieval metrics
retrieval_requests_total = Counter(
    'retrieval_requests_total',
    'Retrieval requests by the path that produced the context',
    ['path']  # lexical, fallback, empty
)

# Chat metrics
chat_streams_total = Counter(
    'chat_streams_total',
    'Chat streams by outcome',
    ['outcome']  # completed, interrupted, rejected
)

upstream_errors_total = Counter(
    'upstream_errors_total',
    'Non-success responses from the chat completion gateway',
    ['status']
)
