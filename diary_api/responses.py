"""
Diary Backend — JSON Response Class
====================================

What:  JSONResponse variant used for every JSON body the API sends.
How:   Declares the media type with an explicit charset, so clients receive
       `content-type: application/json;charset=UTF-8`. Starlette's renderer
       already writes UTF-8 with non-ASCII characters unescaped.
Who:   Set as the app's default_response_class and used by the exception
       handlers and the rate limiter.
"""

from starlette.responses import JSONResponse


class DiaryJSONResponse(JSONResponse):
    media_type = "application/json;charset=UTF-8"
