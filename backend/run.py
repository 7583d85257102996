"""Development server entry point."""
import os

from dotenv import load_dotenv

load_dotenv()

from dynaqr import create_app  # noqa: E402

app = create_app(os.getenv('FLASK_ENV', 'development'))


if __name__ == '__main__':
    app.run(
        host=os.getenv('HOST', '127.0.0.1'),
        port=int(os.getenv('PORT', 5000)),
        debug=app.debug
    )
