# backend/utils/http.py
from fastapi import Request


def client_ip(request: Request):
    return request.client.host if request.client else None
