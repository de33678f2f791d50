# Supabase table: notifications

"""
notifications:
- id: uuid (primary key)
- user_id: uuid (foreign key -> auth.users.id) - recipient
- title: text
- message: text
- type: text (info | success | warning | error)
- is_read: boolean (default false)
- created_at: timestamp
"""
