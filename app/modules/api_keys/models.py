# Supabase table: user_api_keys

"""
user_api_keys:
- id: uuid (primary key)
- user_id: uuid (references profiles.id)
- service_name: text (youtube | openai | ...), unique together with user_id
- api_key_masked: text - e.g. "AIza...xyz", safe to return to clients
- encrypted_key: text - "<iv hex>:<ciphertext hex>" (AES-256-CBC)
- usage_count: integer (default 0)
- usage_today: integer (default 0)
- usage_date: date (nullable)
- is_active: boolean (default true)
- is_valid: boolean (nullable until validated)
- validation_error: text (nullable)
- metadata: jsonb - e.g. {"quotaRemaining": 0}
- last_used_at: timestamp (nullable)
- created_at / updated_at: timestamp

RPC increment_api_key_usage(p_user_id uuid, p_service_name text) bumps
usage_count, resets usage_today when usage_date changes, and sets last_used_at.
"""
