"""
Core application modules.
Contains essential infrastructure components:
- db: Tortoise ORM configuration and connection management
- errors: Error taxonomy mapped to HTTP responses
- security: Password hashing and signed session tokens
- timeutil: Timezone-aware clock helper
"""
