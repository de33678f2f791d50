# Supabase tables: collections, collection_items

"""
collections:
- id: uuid (primary key)
- user_id: uuid (foreign key -> auth.users.id) - owner
- name: text (1-100 chars)
- description: text (nullable, <= 500 chars)
- is_public: boolean (default false)
- tags: text[] (<= 10)
- cover_image: text (nullable)
- video_count: integer (default 0)
- created_at / updated_at: timestamp

collection_items:
- id: uuid (primary key)
- collection_id: uuid (foreign key -> collections.id, on delete cascade)
- video_id: text - YouTube video id, unique per collection
- notes: text (nullable)
- tags: text[]
- position: integer - 0-based order inside the collection
- added_by: uuid
- added_at: timestamp
"""
