"""
rag_pipeline — case-grounded question answering.

Components:
  errors          — exception taxonomy mapped to HTTP statuses
  case_text       — case record → text blob for embedding
  embedder        — text → vector (OpenAI embeddings or local sentence-transformers)
  vector_store    — ChromaDB similarity search over case embeddings
  embedding_sync  — compute / persist embeddings for one case or all pending
  retriever       — best-effort similar-case context for a question
  llm_engine      — system instruction + single-turn LLM call
  advisor         — retriever → llm_engine orchestration
"""
