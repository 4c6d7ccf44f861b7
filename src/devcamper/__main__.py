from devcamper.supervisor import run

run()
