from agents.ingestion.main import handler

# Local test trigger: same shape Step Functions uses for a direct invocation
event = {
    "bucketName": "customer-data-dev-uploads",
    "objectKey": "incoming/customers-100.csv",
}

print(handler(event, None))
