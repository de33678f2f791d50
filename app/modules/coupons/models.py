# Supabase table: coupons

"""
coupons:
- id: uuid (primary key)
- code: text (unique, stored upper-case)
- description: text (nullable)
- discount_type: text (percentage | fixed)
- discount_value: integer - percent (1-100) or KRW amount
- course_id: uuid (nullable) - restricts the coupon to one course
- max_usage: integer (nullable = unlimited)
- usage_count: integer (default 0)
- valid_from / valid_until: timestamp
- is_active: boolean - deleting a coupon only deactivates it
- created_by: uuid
- created_at / updated_at: timestamp

A user has used a coupon when one of their purchases with coupon_id = coupon.id
is completed.
"""
