"""서비스 패키지 — 비즈니스 로직 계층.

Domain services for reviews, objectives, feedback and notifications,
plus the cache, AI, scoring, analytics and monitoring services. Instances
are created once in ``app.container.build_services``.
"""
