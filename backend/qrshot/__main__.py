from qrshot.main import run

run()
