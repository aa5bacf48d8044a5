"""
Gateway endpoint modules:
- quota: usage vs. ceiling
- uploads: presigned URLs, confirmation, server-mediated upload
- files: access touch, pin, delete
- scheduled: retention sweep trigger
"""
