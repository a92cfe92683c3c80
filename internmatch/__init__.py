"""
InternMatch
Internship marketplace backend: students apply to internships that
companies post, with resumes kept in object storage.

Architecture:
- MongoDB: profiles, internships, applications, resume metadata
- Supabase: identity provider and resume object storage
- internmatch.client: client-side state cache over the HTTP API
"""

__version__ = "1.0.0"
