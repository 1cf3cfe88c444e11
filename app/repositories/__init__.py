"""레포지토리 패키지 — 데이터베이스 쿼리 계층.

One module per aggregate (users, organization, OKRs, feedback, review
cycles and submissions, templates, notifications, time entries), each
exposing a singleton built on ``BaseRepository``.
"""
