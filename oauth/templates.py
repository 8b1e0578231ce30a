"""HTML templates for the password login flow.

Placeholders are filled with str.format(); callers must HTML-escape the
values. Literal CSS braces are doubled.
"""

_STYLE = """
        body {{ font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
               background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
               min-height: 100vh; display: flex; align-items: center; justify-content: center; margin: 0; }}
        .container {{ background: white; padding: 40px; border-radius: 16px; box-shadow: 0 20px 60px rgba(0,0,0,0.3);
                     width: 90%; max-width: 400px; box-sizing: border-box; }}
        h1 {{ margin: 0 0 8px; color: #333; font-size: 24px; font-weight: 600; }}
        p {{ color: #666; margin: 0 0 24px; }}
        input[type="password"] {{
            width: 100%; padding: 14px; font-size: 16px; border: 2px solid #e0e0e0; border-radius: 8px;
            box-sizing: border-box; margin-bottom: 16px; }}
        input:focus {{ outline: none; border-color: #667eea; }}
        button {{ width: 100%; padding: 14px; font-size: 16px; font-weight: 600; color: white; border: none;
                 border-radius: 8px; cursor: pointer;
                 background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); }}
        .error {{ color: #e53e3e; }}
        a {{ color: #667eea; text-decoration: none; font-weight: 500; }}
"""

LOGIN_PAGE = """
<!DOCTYPE html>
<html>
<head>
    <title>Gemini Imagen - Login</title>
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <style>""" + _STYLE + """    </style>
</head>
<body>
    <div class="container">
        <h1>Gemini Imagen</h1>
        <p>Enter your password to connect your MCP client</p>
        <form method="POST" action="/authorize/submit">
            <input type="hidden" name="auth_id" value="{auth_id}">
            <input type="hidden" name="state" value="{state}">
            <input type="password" name="password" placeholder="Your secret password" required autofocus>
            <button type="submit">Connect</button>
        </form>
    </div>
</body>
</html>
"""

WRONG_PASSWORD_PAGE = """
<!DOCTYPE html>
<html>
<head>
    <title>Gemini Imagen - Wrong Password</title>
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <style>""" + _STYLE + """    </style>
</head>
<body>
    <div class="container" style="text-align: center;">
        <h1 class="error">Wrong Password</h1>
        <p>The password you entered is not correct.</p>
        <a href="javascript:history.back()">Try Again</a>
    </div>
</body>
</html>
"""
