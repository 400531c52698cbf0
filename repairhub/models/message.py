MAX_MESSAGE_LENGTH = 2000

def claim_notice(technician_name: str, repair_title: str) -> str:
    """Text of the automatic message a customer receives when their repair is claimed."""
    return (
        f'{technician_name} has accepted your repair request for "{repair_title}". '
        "I will review the details and get back to you shortly!"
    )
