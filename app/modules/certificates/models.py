# Supabase table: user_certificates

"""
user_certificates:
- id: uuid (primary key)
- user_id: uuid
- course_id: uuid (one certificate per user and course)
- certificate_number: text - CERT-<epoch ms>-<8 upper hex>
- completion_date: timestamp
- issued_at: timestamp
- score: integer (0-100)
- grade: text (A >= 90, B >= 80, C >= 70, otherwise Pass)
- is_public: boolean (default false) - public certificates are readable by anyone signed in
- certificate_url: text (nullable) - rendered PDF/image
"""
