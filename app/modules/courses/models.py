# Supabase tables: courses, course_lessons, course_enrollments

"""
courses:
- id: uuid (primary key)
- title: text
- description: text (nullable)
- instructor_name: text (nullable)
- thumbnail_url: text (nullable)
- category: text (nullable)
- price: integer (KRW, 0 = free)
- is_published: boolean
- student_count: integer (default 0)
- created_at / updated_at: timestamp

course_lessons:
- id: uuid (primary key)
- course_id: uuid (references courses.id)
- title: text
- video_url: text (nullable)
- duration_seconds: integer
- order_index: integer
- is_preview: boolean

course_enrollments:
- id: uuid (primary key)
- user_id: uuid
- course_id: uuid
- purchase_id: uuid (nullable)
- is_active: boolean (false after refund)
- enrolled_at: timestamp
- unique (user_id, course_id)
"""
