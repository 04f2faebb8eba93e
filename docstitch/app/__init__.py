"""
App layer: FastAPI HTTP API.

core(render/compose/pipeline)를 HTTP 요청/응답으로 연결하는 얇은 계층.
"""
