from fastapi import HTTPException


class ApiError(HTTPException):
    """
    HTTPException с машинным кодом ошибки.

    Обработчик в socialnet.main отдаёт её клиенту как {message, code}.
    """

    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(status_code=status_code, detail={"code": code, "message": message})
        self.code = code
        self.message = message
