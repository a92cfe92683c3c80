"""
Service layer - business logic over the MongoDB collections and the
external storage / email collaborators.
"""
