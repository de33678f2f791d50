# Supabase tables: revenue_proofs, proof_likes, proof_comments, proof_reports, admin_notifications
# Screenshots live in the "revenue-proofs" storage bucket

"""
revenue_proofs:
- id: uuid (primary key)
- user_id: uuid (references profiles.id)
- title: text (2-100 chars)
- content: text (10-5000 chars)
- amount: bigint (KRW, >= 0)
- platform: text (youtube | instagram | tiktok | other)
- screenshot_url: text
- screenshot_path: text - object key inside the bucket
- likes_count / comments_count / reports_count: integer (default 0)
- is_hidden: boolean (default false) - set once reports_count reaches 3
- created_at / updated_at: timestamp

proof_likes:
- id, proof_id, user_id, created_at; unique (proof_id, user_id)

proof_comments:
- id, proof_id, user_id, content (1-500 chars), created_at

proof_reports:
- id, proof_id, reporter_id, reason (spam | inappropriate | fake | copyright | other),
  details (nullable), created_at; unique (proof_id, reporter_id)

admin_notifications:
- id, type (auto_hidden_proof | ...), title, message, metadata jsonb,
  is_read boolean, created_at

Rules:
- one proof per user per KST calendar day
- the owner may edit title/content for 24 hours after creation
- the third report hides the proof and notifies admins
"""
