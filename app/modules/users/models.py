# Supabase tables: profiles, naver_cafe_verifications, account_deletion_logs
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

profiles:
- id: uuid (primary key, references auth.users.id)
- email: text
- username: text (unique)
- full_name: text (nullable)
- avatar_url: text (nullable)
- random_nickname: text (nullable, unique)
- channel_name / channel_url: text (nullable)
- work_type: text (student | employee | freelancer | business | other)
- job_category: text (nullable)
- current_income / target_income: text (nullable)
- experience_level: text (beginner | intermediate | advanced | expert)
- naver_cafe_nickname / naver_cafe_member_url: text (nullable)
- naver_cafe_verified: boolean (default false)
- naver_cafe_verified_at: timestamp (nullable)
- created_at / updated_at: timestamp

naver_cafe_verifications:
- id: uuid (primary key)
- user_id: uuid (references profiles.id)
- cafe_nickname: text
- verification_status: text (pending | verified | rejected)
- verified: boolean
- verified_at: timestamp (nullable)
- created_at: timestamp

account_deletion_logs:
- id: uuid (primary key)
- user_id: uuid
- deletion_id: text (16 hex chars)
- reason: text (nullable)
- email_hash: text (sha256 of the e-mail, never the address itself)
- deleted_at: timestamp

Account deletion anonymises the profile instead of deleting auth.users rows
so foreign keys from proofs, posts and purchases stay intact.
"""
