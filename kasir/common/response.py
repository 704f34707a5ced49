# kasir/common/response.py

from fastapi.responses import JSONResponse


class ErrorResponse:
    @staticmethod
    def send(message="An error occurred", status_code=500, errors=None):
        response = {
            "success": False,
            "message": message,
            "status_code": status_code,
            "errors": errors if errors else []
        }
        return JSONResponse(content=response, status_code=status_code)
