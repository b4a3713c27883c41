"""
01_memory_chat.py - Two turns on one thread, the second remembering the first
"""

import asyncio

from memchain import LiteLLMClient, LLMChain, MemoryChain, MemoryStorage


async def main():
    client = LiteLLMClient(model="gpt-4o-mini", provider_name="openai")
    chain = MemoryChain(generator=LLMChain(client), store=MemoryStorage())

    print("User: My name is Julia.")
    result = await chain.invoke("julia-thread", "My name is Julia.")
    print(f"Assistant: {result.text}")

    print("\nUser: What is my name?")
    async with chain.stream("julia-thread", "What is my name?") as stream:
        print("Assistant: ", end="")
        async for fragment in stream:
            print(fragment, end="", flush=True)
    print()

    snapshot = await chain.history("julia-thread")
    print(f"\nThread is at version {snapshot.checkpoint.version}:\n{snapshot.transcript}")


if __name__ == "__main__":
    asyncio.run(main())
