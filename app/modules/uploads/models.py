# Object storage layout (no database tables)

"""
Buckets (S3-compatible, public read):
- revenue-proofs: {user_id}/{epoch_ms}_{sanitised name}   (revenue proof screenshots)
                  {yyyy}/{m}/{user_id}_{epoch_ms}.{ext}   (generic image uploads)

Keys always contain the uploader's user id; deletes are only allowed when the
caller's id appears in the key.
"""
